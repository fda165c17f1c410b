# Domain Package
from .models import (
    Item,
    Outcome,
    ProgressRecord,
    ProgressSet,
    ProgressStats,
    ScheduledItem,
    SchedulingStats,
)
from .ports import ItemStore

__all__ = [
    "Item",
    "ItemStore",
    "Outcome",
    "ProgressRecord",
    "ProgressSet",
    "ProgressStats",
    "ScheduledItem",
    "SchedulingStats",
]
