"""On-disk storage for rendered QR images."""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image

logger = logging.getLogger(__name__)


class ImageStore:
    """Keep PNG files in one directory and hand out their paths.

    Items reference their picture by path so the serialized collections stay
    small. Every method degrades to ``None``/``False`` on I/O problems.
    """

    def __init__(self, root: str | os.PathLike[str]):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _new_path(self) -> Path:
        return self._root / f"{uuid.uuid4().hex}.png"

    def write(self, image: Image.Image) -> Optional[str]:
        """Save ``image`` as PNG and return its path."""

        path = self._new_path()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            image.save(path, format="PNG")
        except (OSError, ValueError) as exc:
            logger.warning("Could not write image %s: %s", path, exc)
            return None
        return str(path)

    def write_bytes(self, data: bytes) -> Optional[str]:
        """Save already-encoded image bytes and return their path."""

        if not data:
            return None
        path = self._new_path()
        tmp_path = path.with_suffix(".tmp")
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            logger.warning("Could not write image bytes to %s: %s", path, exc)
            return None
        return str(path)

    def decode(self, image_path: Optional[str]) -> Optional[Image.Image]:
        """Return the bitmap stored at ``image_path`` or ``None``."""

        if not image_path:
            return None
        try:
            with Image.open(image_path) as handle:
                handle.load()
                return handle.copy()
        except (OSError, ValueError) as exc:
            logger.debug("Could not decode image %s: %s", image_path, exc)
            return None

    def remove(self, image_path: Optional[str]) -> bool:
        """Delete a stored image; missing files count as removed."""

        if not image_path:
            return False
        try:
            Path(image_path).unlink()
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.warning("Could not remove image %s: %s", image_path, exc)
            return False
        return True


__all__ = ["ImageStore"]
