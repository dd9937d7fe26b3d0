"""
Durable key/value storage for the sheet session.

Values are strings (the session stores its tab set as JSON text under one
key), kept together in a single JSON object on disk.

Usage:
    store = JsonFileStore("sheets.json")
    store.set_item("cc-sheet-tabs", text)
    text = store.get_item("cc-sheet-tabs")
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)


class MemoryStore:
    """Key/value store that lives only as long as the process."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> bool:
        self._items[key] = value
        return True


class JsonFileStore:
    """Key/value store backed by one JSON file."""

    def __init__(self, path: str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read store %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store %s does not hold a JSON object; ignoring it", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items: Dict[str, str]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)
            return True
        except OSError as e:
            logger.error("Error saving store %s: %s", self.path, e)
            return False

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> bool:
        """
        Store a value under ``key``.

        Returns:
            True if successful, False otherwise
        """
        items = self._read_all()
        items[key] = value
        return self._write_all(items)
