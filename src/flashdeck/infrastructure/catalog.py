"""Catalog file loading and writing (JSON or YAML)."""

import json
import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore
import yaml.constructor

from flashdeck.domain.models import Item

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class UniqueKeyLoader(yaml.SafeLoader):
    """
    YAML loader that forbids duplicate keys.
    """

    def construct_mapping(self, node, deep=False):
        mapping = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in mapping:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key '{key}'",
                    key_node.start_mark,
                )
            mapping.add(key)
        return super().construct_mapping(node, deep)


def is_yaml(path: Path) -> bool:
    return path.suffix.lower() in YAML_SUFFIXES


def read_catalog_document(path: Path) -> dict[str, Any]:
    """
    Parse the raw catalog document. Raises on unreadable or malformed files.
    """
    text = path.read_text(encoding="utf-8")
    if is_yaml(path):
        data = yaml.load(text, Loader=UniqueKeyLoader) or {}
    else:
        data = json.loads(text) if text.strip() else {}

    # A bare list of cards is accepted as well
    if isinstance(data, list):
        return {"flashcards": data}
    if not isinstance(data, dict):
        raise ValueError(f"catalog root must be a mapping or list, got {type(data).__name__}")
    return data


def parse_items(entries: list[Any]) -> list[Item]:
    """
    Build Items from raw entries, keeping catalog order.

    Entries without an id or question are skipped; duplicate ids keep the
    first occurrence.
    """
    items: list[Item] = []
    seen: set[str] = set()

    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"[catalog] Skipping entry #{i}: not a mapping")
            continue
        if not entry.get("id") or not entry.get("question"):
            logger.warning(f"[catalog] Skipping entry #{i}: missing id or question")
            continue

        try:
            item = Item.from_dict(entry)
        except (TypeError, ValueError) as e:
            logger.warning(f"[catalog] Skipping entry #{i}: {e}")
            continue
        if item.id in seen:
            logger.warning(f"[catalog] Duplicate id {item.id!r} at entry #{i}, keeping first")
            continue
        seen.add(item.id)
        items.append(item)

    return items


def load_catalog(path: Path) -> list[Item]:
    """
    Load items from a catalog file. Returns an empty catalog on any error.
    """
    if not path.exists():
        logger.warning(f"Catalog not found: {path}")
        return []

    try:
        data = read_catalog_document(path)
    except Exception as e:
        logger.warning(f"Error loading catalog {path}: {e}")
        return []

    entries = data.get("flashcards") or []
    if not isinstance(entries, list):
        logger.warning(f"Catalog {path}: 'flashcards' is not a list")
        return []

    items = parse_items(entries)
    logger.debug(f"Loaded {len(items)} flashcards from {path}")
    return items


def append_to_catalog(path: Path, item: Item) -> None:
    """
    Append an item to a catalog file, creating the file if needed.

    Raises if the existing file cannot be parsed, so it is never overwritten
    with a partial document.
    """
    data = read_catalog_document(path) if path.exists() else {}
    entries = data.setdefault("flashcards", [])
    if any(isinstance(e, dict) and str(e.get("id")) == item.id for e in entries):
        raise ValueError(f"id {item.id!r} already exists in {path}")
    entries.append(item.to_dict())

    path.parent.mkdir(parents=True, exist_ok=True)
    if is_yaml(path):
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")
