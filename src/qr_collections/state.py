"""Runtime state containers used by the desktop application."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .gallery import AuthorizationStatus


@dataclass(slots=True)
class AppState:
    """Mutable state shared between UI components."""

    camera_available: bool = False
    qr_available: bool = False
    camera_status: Optional[AuthorizationStatus] = None
    status_message: str = ""
    saving_to_library: bool = False


__all__ = ["AppState"]
