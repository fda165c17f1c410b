"""
Memory Item Store — process-local implementation of ItemStore.

Used for ephemeral sessions (backend = "memory") and as the base for the
file-backed store.
"""

import logging
from collections.abc import Iterable
from typing import Any

from flashdeck.domain.models import Item, ProgressRecord, ProgressSet
from flashdeck.domain.ports import ItemStore

logger = logging.getLogger(__name__)


class MemoryItemStore(ItemStore):
    """
    Holds the catalog and a ProgressSet in memory.

    Every mutation is applied to a copy of the ProgressSet and handed to
    _commit(); the copy only becomes visible if _commit() succeeds.
    """

    def __init__(self, items: Iterable[Item] = (), progress: ProgressSet | None = None):
        self._items: list[Item] = list(items)
        self._index: dict[str, Item] = {i.id: i for i in self._items}
        self._progress = progress.copy() if progress else ProgressSet()
        self._overrides: dict[str, Any] | None = None

    def _commit(self, progress: ProgressSet) -> bool:
        """Persist a new ProgressSet. Subclasses write it out first."""
        self._progress = progress
        return True

    async def get_all_items(self) -> list[Item]:
        return list(self._items)

    async def get_item(self, item_id: str) -> Item | None:
        if not isinstance(item_id, str):
            return None
        return self._index.get(item_id)

    async def get_progress(self, item_id: str) -> ProgressRecord:
        return self._progress.records.get(item_id) or ProgressRecord()

    async def write_progress(self, item_id: str, record: ProgressRecord) -> bool:
        staged = self._progress.copy()
        staged.records[item_id] = record
        return self._commit(staged)

    async def get_completed(self) -> list[str]:
        return list(self._progress.completed)

    async def add_completed(self, item_id: str) -> bool:
        if item_id in self._progress.completed:
            return True
        staged = self._progress.copy()
        staged.completed.append(item_id)
        return self._commit(staged)

    async def get_later_queue(self) -> list[str]:
        return list(self._progress.repeat_later)

    async def push_later(self, item_id: str) -> bool:
        if item_id in self._progress.repeat_later:
            return True
        staged = self._progress.copy()
        staged.repeat_later.append(item_id)
        return self._commit(staged)

    async def remove_later(self, item_id: str) -> bool:
        if item_id not in self._progress.repeat_later:
            return True
        staged = self._progress.copy()
        staged.repeat_later = [i for i in staged.repeat_later if i != item_id]
        return self._commit(staged)

    async def reset_all(self) -> bool:
        return self._commit(ProgressSet())

    async def load_algorithm_overrides(self) -> dict[str, Any] | None:
        return dict(self._overrides) if self._overrides is not None else None

    async def save_algorithm_overrides(self, overrides: dict[str, Any]) -> bool:
        self._overrides = {**(self._overrides or {}), **overrides}
        return True

    def snapshot(self) -> ProgressSet:
        """Copy of the current progress, for inspection."""
        return self._progress.copy()
