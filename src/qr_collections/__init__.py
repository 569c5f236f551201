"""QR Collections package."""
from __future__ import annotations

from .config import AppConfig, CameraConfig, StyleConfig
from .gallery import AuthorizationStatus, BatchSaveJoin, DirectoryPhotoLibrary, SaveReport, save_to_library
from .images import ImageStore
from .models import Item
from .persistence import DirectoryBackend, MemoryBackend, PersistenceAdapter
from .qr import QRCodeManager
from .scanner import ScanIntake
from .state import AppState
from .store import CollectionStore, GeneratedStore, ScanStore, Updatable
from .transfer import move_selected

__all__ = [
    "AppConfig",
    "CameraConfig",
    "StyleConfig",
    "AppState",
    "AuthorizationStatus",
    "BatchSaveJoin",
    "DirectoryPhotoLibrary",
    "SaveReport",
    "save_to_library",
    "ImageStore",
    "Item",
    "DirectoryBackend",
    "MemoryBackend",
    "PersistenceAdapter",
    "QRCodeManager",
    "ScanIntake",
    "CollectionStore",
    "GeneratedStore",
    "ScanStore",
    "Updatable",
    "move_selected",
]

__version__ = "1.0"
