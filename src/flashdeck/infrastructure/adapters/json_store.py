"""
JSON Item Store — Infrastructure adapter for file-backed progress.

Reads the catalog from a JSON/YAML file and keeps progress in a JSON document:

    {
      "completed": [...],
      "repeat_later": [...],
      "records": {"<id>": {...}},
      "algorithm": {...}
    }
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from flashdeck.domain.models import ProgressSet
from flashdeck.infrastructure.catalog import load_catalog

from .memory_store import MemoryItemStore

logger = logging.getLogger(__name__)


class JsonItemStore(MemoryItemStore):
    """
    File-backed ItemStore.

    Writes are atomic (temp file + rename). If a write fails the in-memory
    state is left as it was before the mutation.
    """

    def __init__(self, catalog_path: Path, progress_path: Path):
        self.catalog_path = catalog_path
        self.progress_path = progress_path
        progress, overrides = self._read_progress_file()
        super().__init__(items=load_catalog(catalog_path), progress=progress)
        self._overrides = overrides

    def _read_progress_file(self) -> tuple[ProgressSet, dict[str, Any] | None]:
        if not self.progress_path.exists():
            return ProgressSet(), None

        try:
            data = json.loads(self.progress_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("progress document is not an object")
            progress = ProgressSet.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Could not read progress from {self.progress_path}: {e}")
            return ProgressSet(), None

        overrides = data.get("algorithm")
        return progress, overrides if isinstance(overrides, dict) else None

    def _write_document(self, progress: ProgressSet, overrides: dict[str, Any] | None) -> bool:
        doc = progress.to_dict()
        if overrides:
            doc["algorithm"] = overrides

        try:
            self.progress_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".progress-", suffix=".json", dir=self.progress_path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(doc, fh, indent=2)
                os.replace(tmp_name, self.progress_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Error writing progress to {self.progress_path}: {e}")
            return False

        logger.debug(
            f"Progress saved: completed={len(progress.completed)} "
            f"repeat_later={len(progress.repeat_later)}"
        )
        return True

    def _commit(self, progress: ProgressSet) -> bool:
        if not self._write_document(progress, self._overrides):
            return False
        return super()._commit(progress)

    async def save_algorithm_overrides(self, overrides: dict[str, Any]) -> bool:
        merged = {**(self._overrides or {}), **overrides}
        if not self._write_document(self._progress, merged):
            return False
        self._overrides = merged
        return True
