"""Saved items: an ordered list (newest first) kept in a JSON key/value file."""

import json
import logging
import os
import tempfile
from pathlib import Path

from smart_qr_studio.model import Configuration, GeneratedItem, ValidationError

logger = logging.getLogger(__name__)

HISTORY_KEY = "qr_history"


class HistoryStore:
    """Persistent list of :class:`GeneratedItem`.

    The file is read once on construction; every mutation rewrites it
    atomically. Missing or corrupt data yields an empty history.

    Args:
        path: JSON file holding a ``{"qr_history": [...]}`` slot.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._items: list[GeneratedItem] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> list[GeneratedItem]:
        if not self._path.exists():
            return []
        try:
            with open(self._path, encoding="utf-8") as f:
                slots = json.load(f)
            return [GeneratedItem.from_dict(entry) for entry in slots.get(HISTORY_KEY, [])]
        except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error("Failed to parse history at %s: %s", self._path, e)
            return []

    def _write(self) -> None:
        slots: dict = {}
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    existing = json.load(f)
                if isinstance(existing, dict):
                    slots = existing
            except (OSError, ValueError):
                pass
        slots[HISTORY_KEY] = [item.to_dict() for item in self._items]

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".history_", suffix=".json", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(slots, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # -- queries --------------------------------------------------------

    def items(self) -> list[GeneratedItem]:
        return list(self._items)

    def get(self, item_id: str) -> GeneratedItem | None:
        return next((item for item in self._items if item.id == item_id), None)

    def __len__(self) -> int:
        return len(self._items)

    # -- mutations ------------------------------------------------------

    def add(self, config: Configuration) -> GeneratedItem:
        """Save ``config`` as the newest item.

        Raises:
            ValidationError: If the content is empty.
        """
        if not config.content.strip():
            raise ValidationError("Cannot save an item with empty content.")
        item = GeneratedItem.create(config)
        self._items = [item] + self._items
        self._write()
        return item

    def update(self, item_id: str, config: Configuration) -> GeneratedItem:
        """Replace an item's configuration in place, keeping its id and position.

        Raises:
            KeyError: If no item has ``item_id``.
            ValidationError: If the content is empty.
        """
        if not config.content.strip():
            raise ValidationError("Cannot save an item with empty content.")
        current = self.get(item_id)
        if current is None:
            raise KeyError(item_id)
        revised = current.revised(config)
        self._items = [revised if item.id == item_id else item for item in self._items]
        self._write()
        return revised

    def delete(self, item_id: str) -> bool:
        """Remove the item with ``item_id``. Returns False if it was not found."""
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._write()
        return True
