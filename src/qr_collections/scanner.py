"""Turning camera reads into scanned items."""
from __future__ import annotations

import logging
from typing import Optional

from .gallery import AuthorizationStatus
from .models import Item
from .store import ScanStore
from .transfer import Renderer

logger = logging.getLogger(__name__)

_CAMERA_MESSAGES = {
    AuthorizationStatus.AUTHORIZED: "Camera ready. Point it at a QR code.",
    AuthorizationStatus.LIMITED: "Camera ready. Point it at a QR code.",
    AuthorizationStatus.NOT_DETERMINED: "Waiting for camera access...",
    AuthorizationStatus.DENIED: "No access to the camera. Check the settings.",
    AuthorizationStatus.RESTRICTED: "No access to the camera. Check the settings.",
}


def camera_status_message(status: Optional[AuthorizationStatus]) -> str:
    """Return the status line shown for a camera authorization state."""

    if status is None:
        return "Unknown camera access status"
    return _CAMERA_MESSAGES[status]


class ScanIntake:
    """Feed decoded payloads from a camera into a :class:`ScanStore`.

    A camera reports the same code on many consecutive frames, so a payload
    equal to the previous one is dropped before the store is consulted. The
    store then rejects any text it already holds.
    """

    def __init__(self, store: ScanStore, render: Optional[Renderer] = None):
        self._store = store
        self._render = render
        self._last_payload: Optional[str] = None

    @property
    def last_payload(self) -> Optional[str]:
        return self._last_payload

    def reset(self) -> None:
        self._last_payload = None

    def submit(self, payload: Optional[str]) -> Optional[Item]:
        """Store ``payload`` if it is new; return the created item."""

        if not payload or not payload.strip():
            return None
        if payload == self._last_payload:
            return None
        self._last_payload = payload

        if self._store.contains_text(payload):
            logger.debug("Scan %r already stored", payload)
            return None

        image = None
        if self._render is not None:
            try:
                image = self._render(payload)
            except Exception:
                logger.exception("Rendering scanned payload %r failed", payload)

        item = self._store.accept_scan(payload, image)
        if item is not None:
            logger.info("Stored scanned code %s", item.id)
        return item


__all__ = ["ScanIntake", "camera_status_message"]
