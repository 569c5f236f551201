"""Serialisation of item collections to named byte blobs.

Blob format (UTF-8 JSON)::

    {"version": 2, "items": [{"id": ..., "text": ..., "imagePath": ..., "isSelected": ...}]}

Version 1 blobs are a bare JSON list whose records may carry the image inline
as base64 PNG bytes under ``imageData``. Those images are moved into the
:class:`~qr_collections.images.ImageStore` the first time the blob is loaded.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .images import ImageStore
from .models import Item

logger = logging.getLogger(__name__)

FORMAT_VERSION = 2
"""Current blob format version."""

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueBackend(Protocol):
    """Get/set bytes by key."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, data: bytes) -> None:
        ...


class MemoryBackend:
    """Dictionary backed storage, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class DirectoryBackend:
    """Store each key as ``<root>/<key>.json``."""

    def __init__(self, root: str | os.PathLike[str]):
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, data: bytes) -> None:
        path = self._path(key)
        self._root.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)


class PersistenceAdapter:
    """Load and save ordered item lists under a key.

    ``load`` never raises: an absent or corrupt blob yields an empty list.
    ``save`` reports failure through its return value.
    """

    def __init__(self, backend: KeyValueBackend, images: Optional[ImageStore] = None):
        self._backend = backend
        self._images = images

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    @staticmethod
    def encode(items: Iterable[Item]) -> bytes:
        document = {
            "version": FORMAT_VERSION,
            "items": [item.to_record() for item in items],
        }
        return json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    def _migrate_record(self, record: Dict[str, Any], written: List[str]) -> Tuple[Dict[str, Any], bool]:
        """Replace inline ``imageData`` with a stored ``imagePath``.

        Paths of newly written image files are appended to ``written``.
        """

        if "imageData" not in record:
            return record, False

        migrated = {key: value for key, value in record.items() if key != "imageData"}
        raw = record.get("imageData")
        if migrated.get("imagePath") or raw is None:
            return migrated, True

        try:
            data = base64.b64decode(raw, validate=True)
        except (TypeError, binascii.Error):
            logger.warning("Dropping undecodable legacy image for item %s", record.get("id"))
            return migrated, True

        if self._images is None:
            logger.warning("No image store configured; dropping legacy image for item %s", record.get("id"))
            return migrated, True

        image_path = self._images.write_bytes(data)
        if image_path:
            written.append(image_path)
        migrated["imagePath"] = image_path
        return migrated, True

    def _discard(self, written: Iterable[str]) -> None:
        if self._images is None:
            return
        for image_path in written:
            self._images.remove(image_path)

    def _decode(self, data: bytes) -> Tuple[List[Item], bool, List[str]]:
        try:
            document = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError("Collection blob is not valid JSON") from exc

        migrated = False
        if isinstance(document, list):
            records = document
            migrated = True
        elif isinstance(document, dict):
            version = document.get("version")
            if version != FORMAT_VERSION:
                raise ValueError(f"Unsupported collection format version: {version}")
            records = document.get("items")
            if not isinstance(records, list):
                raise ValueError("Collection blob has no item list")
        else:
            raise ValueError("Collection blob has an unexpected shape")

        items: List[Item] = []
        written: List[str] = []
        try:
            for record in records:
                if not isinstance(record, dict):
                    raise ValueError("Collection blob contains a non-object record")
                record, changed = self._migrate_record(record, written)
                migrated = migrated or changed
                items.append(Item.from_record(record))
        except ValueError:
            self._discard(written)
            raise

        return items, migrated, written

    def decode(self, data: bytes) -> Tuple[List[Item], bool]:
        """Return ``(items, migrated)`` for a blob.

        Raises :class:`ValueError` when the blob is not a valid collection.
        Images migrated out of a rejected blob are removed again.
        """

        items, migrated, _ = self._decode(data)
        return items, migrated

    def load(self, key: str) -> List[Item]:
        try:
            data = self._backend.get(key)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read collection %r: %s", key, exc)
            return []

        if not data:
            return []

        try:
            items, migrated, written = self._decode(data)
        except ValueError as exc:
            logger.warning("Discarding corrupt collection %r: %s", key, exc)
            return []

        if migrated:
            logger.info("Migrated collection %r to format version %d", key, FORMAT_VERSION)
            if not self.save(key, items) and written:
                # The legacy blob is still in place and will be migrated again.
                orphaned = set(written)
                for item in items:
                    if item.image_path in orphaned:
                        item.image_path = None
                self._discard(written)

        logger.debug("Loaded %d items from %r", len(items), key)
        return items

    def save(self, key: str, items: Iterable[Item]) -> bool:
        try:
            self._backend.set(key, self.encode(items))
        except (OSError, ValueError, TypeError) as exc:
            logger.error("Could not save collection %r: %s", key, exc)
            return False
        return True


__all__ = [
    "FORMAT_VERSION",
    "KeyValueBackend",
    "MemoryBackend",
    "DirectoryBackend",
    "PersistenceAdapter",
]
