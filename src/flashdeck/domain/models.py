"""
Domain models for review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Outcome(str, Enum):
    """Review outcome reported by the learner."""

    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


@dataclass(frozen=True)
class Item:
    """
    A static question/answer unit.

    Attributes:
        id: Unique identifier within the catalog.
        question: Prompt shown first.
        answer: Revealed after the prompt.
        tags: Free-form labels.
        created_at: ISO timestamp from the catalog, if provided.
    """

    id: str
    question: str
    answer: str
    tags: frozenset[str] = frozenset()
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]
        elif not isinstance(tags, list):
            raise TypeError(f"tags must be a string or list, got {type(tags).__name__}")
        return cls(
            id=str(data["id"]),
            question=str(data.get("question", "")),
            answer=str(data.get("answer", "")),
            tags=frozenset(str(t) for t in tags),
            created_at=data.get("createdAt") or data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "tags": sorted(self.tags),
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class ProgressRecord:
    """
    Scheduling state for a single item.

    Attributes:
        review_count: Times the item has been reviewed.
        ease: Percentage-like growth factor (None until first review).
        interval: Current interval in days.
        last_review: Epoch milliseconds of the last review.
        due_date: Epoch milliseconds of the next review (None = due now).
        difficulty: Last recorded outcome.
    """

    review_count: int = 0
    ease: int | None = None
    interval: float = 0.0
    last_review: int | None = None
    due_date: int | None = None
    difficulty: Outcome | None = None

    @property
    def is_new(self) -> bool:
        return self.review_count == 0

    def evolve(self, **changes: Any) -> "ProgressRecord":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressRecord":
        difficulty = data.get("difficulty")
        ease = data.get("ease")
        last_review = data.get("last_review")
        due_date = data.get("due_date")
        return cls(
            review_count=int(data.get("review_count") or 0),
            ease=int(ease) if ease is not None else None,
            interval=float(data.get("interval") or 0.0),
            last_review=int(last_review) if last_review is not None else None,
            due_date=int(due_date) if due_date is not None else None,
            difficulty=Outcome(difficulty) if difficulty else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "review_count": self.review_count,
            "ease": self.ease,
            "interval": self.interval,
            "last_review": self.last_review,
            "due_date": self.due_date,
            "difficulty": self.difficulty.value if self.difficulty else None,
        }


@dataclass
class ProgressSet:
    """
    Aggregate progress owned by an ItemStore.

    completed is an ordered set of ids marked done; repeat_later is a FIFO
    queue of deferred ids without duplicates.
    """

    completed: list[str] = field(default_factory=list)
    repeat_later: list[str] = field(default_factory=list)
    records: dict[str, ProgressRecord] = field(default_factory=dict)

    def copy(self) -> "ProgressSet":
        # Records are immutable, a shallow copy of the dict is enough.
        return ProgressSet(
            completed=list(self.completed),
            repeat_later=list(self.repeat_later),
            records=dict(self.records),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressSet":
        completed = list(dict.fromkeys(str(i) for i in data.get("completed") or []))
        later = list(dict.fromkeys(str(i) for i in data.get("repeat_later") or []))
        records = {
            str(item_id): ProgressRecord.from_dict(rec)
            for item_id, rec in (data.get("records") or {}).items()
            if isinstance(rec, dict)
        }
        return cls(completed=completed, repeat_later=later, records=records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": list(self.completed),
            "repeat_later": list(self.repeat_later),
            "records": {k: v.to_dict() for k, v in self.records.items()},
        }


@dataclass(frozen=True)
class ScheduledItem:
    """An item selected for presentation together with its current progress."""

    item: Item
    progress: ProgressRecord


@dataclass(frozen=True)
class SchedulingStats:
    """
    Counts per scheduling category.

    Categories are counted independently; total is always the catalog size.
    """

    due: int
    new: int
    later: int
    total: int


@dataclass(frozen=True)
class ProgressStats:
    """Completion overview of the catalog."""

    total: int
    completed: int
    repeat_later: int
    unshown: int
    percent_complete: int
