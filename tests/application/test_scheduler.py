"""Tests for the Scheduler selection policy and review bookkeeping."""

import logging
from unittest.mock import AsyncMock

import pytest

from flashdeck.application.scheduler import Scheduler, urgency_key
from flashdeck.domain.models import (
    Item,
    Outcome,
    ProgressRecord,
    ProgressSet,
    ScheduledItem,
    SchedulingStats,
)
from flashdeck.infrastructure.adapters.memory_store import MemoryItemStore

DAY_MS = 86_400_000


def record(review_count=1, due_date=None, interval=1.0, ease=250):
    return ProgressRecord(
        review_count=review_count,
        ease=ease,
        interval=interval,
        last_review=due_date - DAY_MS if due_date is not None else None,
        due_date=due_date,
        difficulty=Outcome.GOOD if review_count else None,
    )


class FailingWriteStore(MemoryItemStore):
    async def write_progress(self, item_id, record):
        return False


# --- Due tier ---


@pytest.mark.asyncio
async def test_single_new_item_comes_from_due_tier(algorithm, failing_choice):
    y = Item(id="y", question="Q", answer="A")
    scheduler = Scheduler(MemoryItemStore([y]), algorithm, rng=failing_choice)

    picked = await scheduler.get_next_flashcard()

    assert picked is not None
    assert picked.item == y
    assert picked.progress.due_date is None


@pytest.mark.asyncio
async def test_overdue_beats_future_and_new(items, algorithm, now_ms, failing_choice):
    progress = ProgressSet(
        completed=["fc-1", "fc-2"],
        records={
            "fc-1": record(due_date=now_ms + 3 * DAY_MS),
            "fc-2": record(due_date=now_ms - DAY_MS),
        },
    )
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm, rng=failing_choice)

    picked = await scheduler.get_next_flashcard()

    assert picked.item.id == "fc-2"


@pytest.mark.asyncio
async def test_earliest_due_date_wins(items, algorithm, now_ms):
    progress = ProgressSet(
        records={
            "fc-1": record(due_date=now_ms - DAY_MS),
            "fc-2": record(due_date=now_ms - 5 * DAY_MS),
            "fc-3": record(due_date=now_ms - 2 * DAY_MS),
        },
    )
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm)

    picked = await scheduler.get_next_flashcard()

    assert picked.item.id == "fc-2"


@pytest.mark.asyncio
async def test_new_items_keep_catalog_order(items, algorithm):
    scheduler = Scheduler(MemoryItemStore(items), algorithm)

    picked = await scheduler.get_next_flashcard()

    assert picked.item.id == "fc-1"


def test_urgency_key_falls_back_to_review_count():
    item = Item(id="x", question="Q", answer="A")
    legacy = ScheduledItem(item, ProgressRecord(review_count=3))
    fresh = ScheduledItem(item, ProgressRecord())
    dated = ScheduledItem(item, record(due_date=10))

    ordered = sorted([legacy, fresh, dated], key=urgency_key)

    assert ordered == [dated, fresh, legacy]


# --- Unshown tier ---


@pytest.mark.asyncio
async def test_unshown_tier_after_hard_review(items, algorithm, now_ms, rng_factory):
    # Everything scheduled in the future; only fc-3 was never completed
    progress = ProgressSet(
        completed=["fc-1", "fc-2"],
        records={i.id: record(due_date=now_ms + DAY_MS) for i in items},
    )
    rng = rng_factory()
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm, rng=rng)

    picked = await scheduler.get_next_flashcard()

    assert picked.item.id == "fc-3"
    assert rng.calls == 1


@pytest.mark.asyncio
async def test_unshown_tier_is_uniform_over_uncompleted(items, algorithm, now_ms):
    import random

    progress = ProgressSet(records={i.id: record(due_date=now_ms + DAY_MS) for i in items})
    scheduler = Scheduler(
        MemoryItemStore(items, progress), algorithm, rng=random.Random(7)
    )

    seen = {(await scheduler.get_next_flashcard()).item.id for _ in range(60)}

    assert seen == {"fc-1", "fc-2", "fc-3"}


# --- Deferred tier ---


@pytest.mark.asyncio
async def test_later_tier_is_fifo(items, algorithm, now_ms):
    progress = ProgressSet(
        completed=[i.id for i in items],
        repeat_later=["fc-3", "fc-1"],
        records={i.id: record(due_date=now_ms + DAY_MS) for i in items},
    )
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm)

    picked = await scheduler.get_next_flashcard()

    assert picked.item.id == "fc-3"


@pytest.mark.asyncio
async def test_later_tier_skips_unknown_ids(items, algorithm, now_ms):
    progress = ProgressSet(
        completed=[i.id for i in items],
        repeat_later=["gone", "fc-2"],
        records={i.id: record(due_date=now_ms + DAY_MS) for i in items},
    )
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm)

    picked = await scheduler.get_next_flashcard()

    assert picked.item.id == "fc-2"


@pytest.mark.asyncio
async def test_nothing_available(items, algorithm, now_ms):
    progress = ProgressSet(
        completed=[i.id for i in items],
        records={i.id: record(due_date=now_ms + DAY_MS) for i in items},
    )
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm)

    assert await scheduler.get_next_flashcard() is None
    assert await scheduler.has_flashcards_available() is False


@pytest.mark.asyncio
async def test_empty_catalog(algorithm):
    scheduler = Scheduler(MemoryItemStore([]), algorithm)

    assert await scheduler.get_next_flashcard() is None
    assert await scheduler.get_scheduling_stats() == SchedulingStats(0, 0, 0, 0)


@pytest.mark.asyncio
async def test_has_flashcards_available(scheduler):
    assert await scheduler.has_flashcards_available() is True


# --- Recording ---


@pytest.mark.asyncio
async def test_record_good_marks_completed_and_clears_later(scheduler, store):
    await scheduler.mark_for_later("fc-1")

    updated = await scheduler.record_review("fc-1", Outcome.GOOD)

    assert updated.review_count == 1
    assert await store.get_progress("fc-1") == updated
    assert await store.get_completed() == ["fc-1"]
    assert await store.get_later_queue() == []


@pytest.mark.asyncio
async def test_record_easy_twice_completes_once(scheduler, store):
    await scheduler.record_review("fc-2", Outcome.EASY)
    await scheduler.record_review("fc-2", Outcome.EASY)

    assert await store.get_completed() == ["fc-2"]
    assert (await store.get_progress("fc-2")).review_count == 2


@pytest.mark.asyncio
async def test_record_hard_keeps_item_in_rotation(scheduler, store):
    await scheduler.mark_for_later("fc-1")

    updated = await scheduler.record_review("fc-1", Outcome.HARD)

    assert updated.interval == 0.5
    assert await store.get_completed() == []
    assert await store.get_later_queue() == ["fc-1"]


@pytest.mark.asyncio
async def test_record_review_unknown_id(scheduler, store):
    assert await scheduler.record_review("nope", Outcome.GOOD) is None
    assert store.snapshot().records == {}


@pytest.mark.asyncio
async def test_record_review_invalid_outcome(scheduler, store):
    assert await scheduler.record_review("fc-1", "meh") is None
    assert store.snapshot().records == {}


@pytest.mark.asyncio
async def test_record_review_write_failure_skips_bookkeeping(items, algorithm):
    store = FailingWriteStore(items)
    scheduler = Scheduler(store, algorithm)

    assert await scheduler.record_review("fc-1", Outcome.GOOD) is None
    assert await store.get_completed() == []
    assert (await store.get_progress("fc-1")).review_count == 0


class FailingBookkeepingStore(MemoryItemStore):
    async def add_completed(self, item_id):
        return False

    async def remove_later(self, item_id):
        return False


@pytest.mark.asyncio
async def test_record_review_warns_on_bookkeeping_failure(items, algorithm, caplog):
    store = FailingBookkeepingStore(items, ProgressSet(repeat_later=["fc-1"]))
    scheduler = Scheduler(store, algorithm)

    with caplog.at_level(logging.WARNING, logger="flashdeck.application.scheduler"):
        updated = await scheduler.record_review("fc-1", Outcome.GOOD)

    assert updated is not None
    assert (await store.get_progress("fc-1")) == updated
    assert "not marked completed" in caplog.text
    assert "still queued for later" in caplog.text


@pytest.mark.asyncio
async def test_review_then_stats_round_trip(scheduler):
    await scheduler.record_review("fc-1", Outcome.GOOD)

    stats = await scheduler.get_scheduling_stats()

    assert stats.new == 2
    assert stats.total == 3


# --- Mark for later ---


@pytest.mark.asyncio
async def test_mark_for_later_is_idempotent(scheduler, store):
    assert await scheduler.mark_for_later("fc-2") is True
    assert await scheduler.mark_for_later("fc-2") is True

    assert await store.get_later_queue() == ["fc-2"]


@pytest.mark.asyncio
async def test_mark_for_later_unknown_id(scheduler, store):
    assert await scheduler.mark_for_later("nope") is False
    assert await store.get_later_queue() == []


# --- Statistics ---


@pytest.mark.asyncio
async def test_scheduling_stats_categories(items, algorithm, now_ms):
    progress = ProgressSet(
        completed=["fc-1", "fc-2"],
        repeat_later=["fc-2", "fc-3"],
        records={
            "fc-1": record(due_date=now_ms - DAY_MS),
            "fc-2": record(due_date=now_ms + DAY_MS),
        },
    )
    scheduler = Scheduler(MemoryItemStore(items, progress), algorithm)

    stats = await scheduler.get_scheduling_stats()

    assert stats == SchedulingStats(due=1, new=1, later=2, total=3)


@pytest.mark.asyncio
async def test_progress_stats(scheduler):
    await scheduler.record_review("fc-1", Outcome.GOOD)
    await scheduler.mark_for_later("fc-3")

    stats = await scheduler.get_progress_stats()

    assert stats.total == 3
    assert stats.completed == 1
    assert stats.repeat_later == 1
    assert stats.unshown == 2
    assert stats.percent_complete == 33


@pytest.mark.asyncio
async def test_reset_progress(scheduler, store):
    await scheduler.record_review("fc-1", Outcome.GOOD)
    await scheduler.mark_for_later("fc-2")

    assert await scheduler.reset_progress() is True

    assert store.snapshot() == ProgressSet()
    assert (await scheduler.get_scheduling_stats()).new == 3


@pytest.mark.asyncio
async def test_reset_item_restarts_one_schedule(scheduler, store):
    await scheduler.record_review("fc-1", Outcome.EASY)
    await scheduler.record_review("fc-2", Outcome.GOOD)

    fresh = await scheduler.reset_item("fc-1")

    assert fresh == ProgressRecord(review_count=0, ease=250, interval=0.0)
    assert await store.get_progress("fc-1") == fresh
    assert (await store.get_progress("fc-2")).review_count == 1
    assert await store.get_completed() == ["fc-1", "fc-2"]
    assert (await scheduler.get_next_flashcard()).item.id == "fc-1"


@pytest.mark.asyncio
async def test_reset_item_unknown_id(scheduler):
    assert await scheduler.reset_item("nope") is None


# --- Failure semantics ---


@pytest.fixture
def broken_store():
    store = AsyncMock()
    boom = RuntimeError("storage offline")
    for name in (
        "get_all_items",
        "get_item",
        "get_progress",
        "get_completed",
        "get_later_queue",
        "push_later",
        "reset_all",
    ):
        getattr(store, name).side_effect = boom
    return store


@pytest.mark.asyncio
async def test_store_failures_never_raise(broken_store, algorithm):
    scheduler = Scheduler(broken_store, algorithm)

    assert await scheduler.get_next_flashcard() is None
    assert await scheduler.has_flashcards_available() is False
    assert await scheduler.record_review("fc-1", Outcome.GOOD) is None
    assert await scheduler.mark_for_later("fc-1") is False
    assert await scheduler.get_scheduling_stats() is None
    assert await scheduler.get_progress_stats() is None
    assert await scheduler.reset_progress() is False


@pytest.mark.asyncio
async def test_scheduler_rereads_store(scheduler, store, now_ms):
    first = await scheduler.get_next_flashcard()
    await store.write_progress(first.item.id, record(due_date=now_ms + DAY_MS))
    await store.add_completed(first.item.id)

    second = await scheduler.get_next_flashcard()

    assert second.item.id != first.item.id
