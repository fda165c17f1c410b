"""
Ports (interfaces) for item and progress storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import Item, ProgressRecord


class ItemStore(ABC):
    """
    Port for the item catalog and per-item progress.

    Mutators report success by return value. A failed write must leave the
    store's visible state unchanged.

    Implementations:
        - MemoryItemStore: Volatile, process-local state.
        - JsonItemStore: Catalog file plus a JSON progress file on disk.
    """

    @abstractmethod
    async def get_all_items(self) -> list[Item]:
        """
        Return every catalog item in stable catalog order.
        """
        pass

    @abstractmethod
    async def get_item(self, item_id: str) -> Item | None:
        """
        Look up a single item, or None if the id is not in the catalog.
        """
        pass

    @abstractmethod
    async def get_progress(self, item_id: str) -> ProgressRecord:
        """
        Return the progress record for an id (all-defaults if none exists).
        """
        pass

    @abstractmethod
    async def write_progress(self, item_id: str, record: ProgressRecord) -> bool:
        pass

    @abstractmethod
    async def get_completed(self) -> list[str]:
        pass

    @abstractmethod
    async def add_completed(self, item_id: str) -> bool:
        pass

    @abstractmethod
    async def get_later_queue(self) -> list[str]:
        """
        Return the deferred ids, oldest first.
        """
        pass

    @abstractmethod
    async def push_later(self, item_id: str) -> bool:
        pass

    @abstractmethod
    async def remove_later(self, item_id: str) -> bool:
        pass

    @abstractmethod
    async def reset_all(self) -> bool:
        """
        Restore every record to defaults and clear the completed and later sets.
        """
        pass

    @abstractmethod
    async def load_algorithm_overrides(self) -> dict[str, Any] | None:
        """
        Return persisted algorithm settings, or None if nothing was saved.
        """
        pass

    @abstractmethod
    async def save_algorithm_overrides(self, overrides: dict[str, Any]) -> bool:
        pass
