"""
Scheduler — Application layer orchestrator.

Selects the next item to present and records review outcomes.

Selection priority, first non-empty tier wins:
1. Due items (including never-reviewed ones), most urgent first
2. Items never marked completed, picked at random
3. Items deferred with "repeat later", oldest first
"""

import logging
import random
from collections.abc import Sequence
from typing import Protocol, TypeVar

from flashdeck.domain.models import (
    Outcome,
    ProgressRecord,
    ProgressStats,
    ScheduledItem,
    SchedulingStats,
)
from flashdeck.domain.ports import ItemStore

from .algorithm import ReviewAlgorithm

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChoiceSource(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...


def urgency_key(candidate: ScheduledItem) -> tuple[bool, int, int]:
    """
    Sort key for due items.

    Items with a due date come first, earliest first; items without one
    (never reviewed) follow. Fewer reviews breaks remaining ties, and the
    stable sort keeps catalog order after that.
    """
    due = candidate.progress.due_date
    return (due is None, due if due is not None else 0, candidate.progress.review_count)


class Scheduler:
    """
    Application service for review scheduling.

    Follows Dependency Inversion: depends on the ItemStore abstraction.
    Nothing is cached between calls; every operation re-reads the store.
    Store failures are logged and reported as None/False, never raised.
    """

    def __init__(
        self,
        store: ItemStore,
        algorithm: ReviewAlgorithm,
        rng: ChoiceSource | None = None,
    ):
        """
        Args:
            store: The repository (port) for items and progress.
            algorithm: Review calculator.
            rng: Random source for the unshown tier.
        """
        self._store = store
        self._algorithm = algorithm
        self._rng = rng or random.Random()

    @property
    def algorithm(self) -> ReviewAlgorithm:
        return self._algorithm

    @property
    def store(self) -> ItemStore:
        return self._store

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def get_next_flashcard(self) -> ScheduledItem | None:
        """
        Pick the single best item to present next, or None if nothing is available.
        """
        try:
            for tier in (self._due_tier, self._unshown_tier, self._later_tier):
                picked = await tier()
                if picked is not None:
                    logger.debug(f"Selected {picked.item.id} via {tier.__name__}")
                    return picked
            return None
        except Exception as e:
            logger.error(f"Failed to select next flashcard: {e}", exc_info=True)
            return None

    async def _due_tier(self) -> ScheduledItem | None:
        candidates: list[ScheduledItem] = []
        for item in await self._store.get_all_items():
            progress = await self._store.get_progress(item.id)
            if self._algorithm.is_due(progress):
                candidates.append(ScheduledItem(item=item, progress=progress))

        if not candidates:
            return None

        candidates.sort(key=urgency_key)
        return candidates[0]

    async def _unshown_tier(self) -> ScheduledItem | None:
        completed = set(await self._store.get_completed())
        unshown = [i for i in await self._store.get_all_items() if i.id not in completed]
        if not unshown:
            return None

        item = self._rng.choice(unshown)
        progress = await self._store.get_progress(item.id)
        return ScheduledItem(item=item, progress=progress)

    async def _later_tier(self) -> ScheduledItem | None:
        for item_id in await self._store.get_later_queue():
            item = await self._store.get_item(item_id)
            if item is None:
                logger.warning(f"Deferred id {item_id!r} is not in the catalog, skipping")
                continue
            progress = await self._store.get_progress(item_id)
            return ScheduledItem(item=item, progress=progress)
        return None

    async def has_flashcards_available(self) -> bool:
        return await self.get_next_flashcard() is not None

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def record_review(self, item_id: str, outcome: Outcome) -> ProgressRecord | None:
        """
        Record a review outcome and update scheduling.

        Good and Easy mark the item completed and drop it from the repeat-later
        queue. Hard keeps it in rotation without marking it completed.

        Returns:
            The new ProgressRecord, or None if the id is unknown or the
            write failed (in which case no bookkeeping is applied).
        """
        try:
            outcome = Outcome(outcome)
            if await self._store.get_item(item_id) is None:
                logger.warning(f"Cannot record review: unknown flashcard {item_id!r}")
                return None

            current = await self._store.get_progress(item_id)
            updated = self._algorithm.calculate_review(current, outcome)

            if not await self._store.write_progress(item_id, updated):
                logger.error(f"Failed to persist review for {item_id}")
                return None

            if outcome in (Outcome.GOOD, Outcome.EASY):
                if item_id not in await self._store.get_completed():
                    if not await self._store.add_completed(item_id):
                        logger.warning(f"Review saved but {item_id} not marked completed")
                if item_id in await self._store.get_later_queue():
                    if not await self._store.remove_later(item_id):
                        logger.warning(f"Review saved but {item_id} still queued for later")

            logger.info(
                f"Recorded {outcome.value} for {item_id}: "
                f"interval={updated.interval}d ease={updated.ease}"
            )
            return updated
        except Exception as e:
            logger.error(f"Failed to record review for {item_id}: {e}", exc_info=True)
            return None

    async def mark_for_later(self, item_id: str) -> bool:
        """
        Defer an item to the repeat-later queue (idempotent).

        Returns True if the item is queued afterwards.
        """
        try:
            if await self._store.get_item(item_id) is None:
                logger.warning(f"Cannot mark for later: unknown flashcard {item_id!r}")
                return False

            if item_id in await self._store.get_later_queue():
                return True

            ok = await self._store.push_later(item_id)
            if ok:
                logger.info(f"Flashcard marked for later: {item_id}")
            return ok
        except Exception as e:
            logger.error(f"Error in mark_for_later: {e}", exc_info=True)
            return False

    async def reset_item(self, item_id: str) -> ProgressRecord | None:
        """
        Restart the schedule of a single item.

        Completed and repeat-later membership are left as they are.
        """
        try:
            if await self._store.get_item(item_id) is None:
                logger.warning(f"Cannot reset: unknown flashcard {item_id!r}")
                return None

            fresh = self._algorithm.reset_progress(await self._store.get_progress(item_id))
            if not await self._store.write_progress(item_id, fresh):
                logger.error(f"Failed to persist reset for {item_id}")
                return None

            logger.info(f"Progress reset for {item_id}")
            return fresh
        except Exception as e:
            logger.error(f"Failed to reset {item_id}: {e}", exc_info=True)
            return None

    async def reset_progress(self) -> bool:
        try:
            ok = await self._store.reset_all()
            if ok:
                logger.info("All progress reset")
            return ok
        except Exception as e:
            logger.error(f"Failed to reset progress: {e}", exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_scheduling_stats(self) -> SchedulingStats | None:
        """
        Count new, due and deferred items from current progress state.
        """
        try:
            items = await self._store.get_all_items()
            later = set(await self._store.get_later_queue())

            due_count = 0
            new_count = 0
            later_count = 0

            for item in items:
                progress = await self._store.get_progress(item.id)

                if progress.review_count == 0:
                    new_count += 1
                elif self._algorithm.is_due(progress):
                    due_count += 1

                if item.id in later:
                    later_count += 1

            return SchedulingStats(
                due=due_count, new=new_count, later=later_count, total=len(items)
            )
        except Exception as e:
            logger.error(f"Failed to compute scheduling stats: {e}", exc_info=True)
            return None

    async def get_progress_stats(self) -> ProgressStats | None:
        try:
            items = await self._store.get_all_items()
            completed = await self._store.get_completed()
            later = await self._store.get_later_queue()

            done = set(completed)
            total = len(items)
            unshown = sum(1 for i in items if i.id not in done)

            return ProgressStats(
                total=total,
                completed=len(completed),
                repeat_later=len(later),
                unshown=unshown,
                percent_complete=round(len(completed) / total * 100) if total else 0,
            )
        except Exception as e:
            logger.error(f"Failed to compute progress stats: {e}", exc_info=True)
            return None
