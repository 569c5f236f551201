"""QR code rendering and reading utilities."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from .config import AppConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QRCodeManager:
    """Render QR codes with :mod:`segno` and read them with OpenCV/pyzbar."""

    config: AppConfig

    def is_available(self) -> bool:
        try:
            import segno  # type: ignore  # noqa: F401
        except ImportError:
            return False
        return True

    def can_read(self) -> bool:  # pragma: no cover - depends on the optional extra
        try:
            import cv2  # type: ignore  # noqa: F401
            from pyzbar import pyzbar  # type: ignore  # noqa: F401
        except ImportError:
            return False
        return True

    def _make(self, text: str):
        try:
            import segno  # type: ignore
        except ImportError as exc:  # pragma: no cover - depends on environment
            raise RuntimeError("QR generation requires segno; install segno") from exc

        return segno.make(text, error=self.config.qr_error_correction, micro=False)

    def render_png(self, text: str) -> bytes:
        """Return PNG bytes for ``text``.

        Raises :class:`ValueError` for blank text.
        """

        if not text or not text.strip():
            raise ValueError("Cannot render an empty QR payload")

        qr = self._make(text)
        buffer = io.BytesIO()
        qr.save(buffer, kind="png", scale=self.config.qr_scale, border=self.config.qr_border)
        return buffer.getvalue()

    def render(self, text: str) -> Optional[Image.Image]:
        """Return a bitmap for ``text`` or ``None`` if rendering fails."""

        try:
            data = self.render_png(text)
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return image.copy()
        except (ValueError, OSError, RuntimeError) as exc:
            logger.warning("Could not render QR code for %r: %s", text, exc)
            return None

    def save_png(self, text: str, path: str) -> str:
        """Persist a QR code representing ``text`` to ``path`` and return the path."""

        if not text or not text.strip():
            raise ValueError("Cannot render an empty QR payload")

        qr = self._make(text)
        qr.save(path, scale=self.config.qr_scale, border=self.config.qr_border)
        return path

    @staticmethod
    def decode_qr_payload(data: bytes) -> Optional[str]:
        """Return the text carried by raw QR bytes, or ``None`` for blank/binary data."""

        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            return None
        text = text.strip("\r\n")
        return text or None

    def decode_frame(self, frame) -> Optional[str]:  # pragma: no cover - requires optional deps
        """Decode the first QR code found in an OpenCV BGR frame."""

        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except ImportError:
            return None

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        for processed in (
            gray,
            cv2.GaussianBlur(gray, (5, 5), 0),
            cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)[1],
        ):
            decoded = pyzbar.decode(processed)
            if decoded:
                return self.decode_qr_payload(decoded[0].data)

        return None

    def read_from_file(self, path: str) -> Optional[str]:  # pragma: no cover - requires optional deps
        """Decode QR contents of an image file using OpenCV and :mod:`pyzbar`."""

        try:
            import cv2  # type: ignore
        except ImportError:
            return None

        image = cv2.imread(path)
        if image is None:
            return None

        return self.decode_frame(image)


__all__ = ["QRCodeManager"]
