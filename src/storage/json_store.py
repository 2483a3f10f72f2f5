"""
Whole-file JSON record storage.

Each collection lives in its own file and is read and rewritten in full
on every change. There is no locking or optimistic concurrency check;
two writers racing on the same file is an accepted limitation.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a record file cannot be read, decoded or written."""


class JsonRecordStore:
    """One JSON document on disk with a default for when it does not exist yet."""

    def __init__(self, path: Path, default_factory: Callable[[], Any] = list) -> None:
        self.path = Path(path)
        self._default_factory = default_factory

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Any:
        """Return the stored document, or a fresh default if the file is missing."""
        if not self.path.exists():
            return self._default_factory()
        try:
            raw = self.path.read_text(encoding="utf-8")
            return json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise StorageError(f"Cannot read {self.path.name}: {exc}") from exc

    def save(self, data: Any) -> None:
        """Overwrite the file with ``data``."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError) as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            raise StorageError(f"Cannot write {self.path.name}: {exc}") from exc
        logger.debug("Saved %s", self.path)
