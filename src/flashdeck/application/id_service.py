"""Service for generating stable flashcard IDs."""

from ulid import ULID

from flashdeck.domain.constants import ITEM_ID_PREFIX


def generate_item_id() -> str:
    """Generate a stable, sortable flashcard ID using ULID."""
    return f"{ITEM_ID_PREFIX}{ULID()}"
