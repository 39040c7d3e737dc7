"""
Flat-file persistence for the bookstore.

Each collection is one JSON document on disk, read and written whole:

- books -> books.json, a bare array
- users -> users.json, an object ``{"users": [...]}``

There is no locking across processes. Two writers doing read-modify-write
on the same collection race and the last one wins.
"""
import json
import logging
import os
import tempfile
from typing import Any, Dict, List

import config
from errors import PersistenceError

logger = logging.getLogger(__name__)

# collection name -> (file name, wrapping key or None for a bare array)
COLLECTIONS = {
    "books": ("books.json", None),
    "users": ("users.json", "users"),
}


class JsonStore:
    def __init__(self, data_dir: str, strict: bool = False):
        self.data_dir = data_dir
        self.strict = strict

    def path(self, collection: str) -> str:
        filename, _ = self._layout(collection)
        return os.path.join(self.data_dir, filename)

    def load(self, collection: str) -> List[Dict[str, Any]]:
        _, key = self._layout(collection)
        path = self.path(collection)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            items = data[key] if key else data
            if not isinstance(items, list):
                raise ValueError(f"{collection} is not a list")
            return items
        except (OSError, ValueError, KeyError, TypeError) as e:
            # A failed read looks exactly like an empty collection to callers
            logger.error("Error reading %s collection from %s: %s", collection, path, e)
            if self.strict:
                raise PersistenceError(f"Failed to read {collection}")
            return []

    def save(self, collection: str, items: List[Dict[str, Any]]) -> bool:
        _, key = self._layout(collection)
        path = self.path(collection)
        payload = {key: items} if key else items
        tmp_path = None
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp_path, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving %s collection to %s: %s", collection, path, e)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            return False

    @staticmethod
    def _layout(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")


db = JsonStore(config.DATA_DIR, strict=config.STRICT_READS)
