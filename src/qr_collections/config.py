"""Configuration data structures for QR Collections."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

DATA_DIR_ENV = "QR_COLLECTIONS_DATA_DIR"


def default_data_dir() -> Path:
    """Return the directory holding stores, images and the local library."""

    env = os.environ.get(DATA_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".qr_collections"


@dataclass(slots=True)
class AppConfig:
    """Static configuration options used across the application."""

    app_name: str = "QRCollections"
    app_version: str = "1.0"
    batch_size: int = 15
    generated_key: str = "generated"
    scanned_key: str = "scanned"
    data_dir: Path = field(default_factory=default_data_dir)
    store_subdir: str = "stores"
    image_subdir: str = "images"
    library_subdir: str = "library"
    library_workers: int = 4
    qr_error_correction: str = "M"
    qr_scale: int = 10
    qr_border: int = 4
    camera_frame_skip: int = 5
    max_frame_size: int = 1_920
    log_level: str = "INFO"

    @property
    def store_dir(self) -> Path:
        return Path(self.data_dir) / self.store_subdir

    @property
    def image_dir(self) -> Path:
        return Path(self.data_dir) / self.image_subdir

    @property
    def library_dir(self) -> Path:
        return Path(self.data_dir) / self.library_subdir


@dataclass(slots=True)
class CameraConfig:
    """Runtime camera configuration used by the optional camera worker."""

    width: int = 640
    height: int = 480

    def get_backends(self) -> List[int]:
        """Return a list of OpenCV backend identifiers to try.

        OpenCV ships with the ``gui`` extra only, so the import happens here
        rather than at module level.
        """

        try:  # pragma: no cover - depends on the optional extra
            import cv2  # type: ignore
        except ImportError:  # pragma: no cover
            return []

        try:
            return [cv2.CAP_DSHOW, cv2.CAP_MSMF, cv2.CAP_ANY]
        except AttributeError:  # pragma: no cover - depends on the OpenCV build
            return [getattr(cv2, "CAP_ANY", 0)]

    def get_indices(self) -> List[int]:
        """Return candidate camera indices."""

        return [0, 1, 2]


@dataclass(slots=True)
class StyleConfig:
    """Simple grouping of UI styling constants."""

    bg_primary: str = "#F5F6FA"
    bg_secondary: str = "#FFFFFF"
    fg_primary: str = "#1F2430"
    fg_secondary: str = "#5C6370"
    accent_primary: str = "#2F6FEB"
    selection: str = "#DCE8FD"
    warning: str = "#D64545"
    success: str = "#2E9E5B"
    border: str = "#D0D4DD"
    font_family: str = "Segoe UI, sans-serif"
    font_size: int = 14
    thumbnail_size: int = 60


__all__ = ["AppConfig", "CameraConfig", "StyleConfig", "default_data_dir", "DATA_DIR_ENV"]
