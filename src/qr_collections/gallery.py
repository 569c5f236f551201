"""Saving batches of QR images to a photo library."""
from __future__ import annotations

import enum
import logging
import os
import threading
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from PIL import Image

logger = logging.getLogger(__name__)

DENIED_MESSAGE = "Access to the photo library is denied. Allow it in the settings."
RESTRICTED_MESSAGE = "Access to the photo library is restricted on this system."


class AuthorizationStatus(enum.Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    LIMITED = "limited"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def can_write(self) -> bool:
        return self in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.LIMITED)


@dataclass(frozen=True, slots=True)
class SaveReport:
    """Outcome of a batch save."""

    succeeded: int
    failed: int

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def message(self) -> str:
        return f"Saved {self.succeeded} of {self.total}. Errors: {self.failed}"


class PhotoLibrary(Protocol):
    def authorization_status(self) -> AuthorizationStatus:
        ...

    def request_authorization(self, callback: Callable[[AuthorizationStatus], None]) -> None:
        ...

    def write(self, image: Image.Image, callback: Callable[[bool], None]) -> None:
        ...


class BatchSaveJoin:
    """Collect ``total`` independent results and report once.

    Results may arrive from any thread and in any order. ``completion`` runs
    exactly once, on the thread that delivers the last result.
    """

    def __init__(self, total: int, completion: Callable[[SaveReport], None]):
        if total < 1:
            raise ValueError("A batch needs at least one write")
        self._total = total
        self._completion = completion
        self._succeeded = 0
        self._failed = 0
        self._lock = threading.Lock()

    @property
    def total(self) -> int:
        return self._total

    @property
    def pending(self) -> int:
        with self._lock:
            return self._total - self._succeeded - self._failed

    def record(self, success: bool) -> None:
        with self._lock:
            if self._succeeded + self._failed >= self._total:
                logger.warning("Ignoring result delivered after the batch finished")
                return
            if success:
                self._succeeded += 1
            else:
                self._failed += 1
            if self._succeeded + self._failed < self._total:
                return
            report = SaveReport(self._succeeded, self._failed)

        self._completion(report)


def _start_saving(
    library: PhotoLibrary,
    images: Sequence[Image.Image],
    on_done: Callable[[SaveReport], None],
) -> None:
    join = BatchSaveJoin(len(images), on_done)
    for image in images:
        try:
            library.write(image, join.record)
        except Exception:
            logger.exception("Photo library write could not be started")
            join.record(False)


def save_to_library(
    library: PhotoLibrary,
    images: Sequence[Image.Image],
    on_done: Callable[[SaveReport], None],
    on_status: Callable[[str], None],
) -> bool:
    """Write ``images`` to ``library`` after checking authorization.

    Returns ``True`` when saving started or is waiting on an authorization
    prompt. Refusals are reported through ``on_status``, never raised.
    """

    if not images:
        return False

    images = list(images)
    status = library.authorization_status()

    if status.can_write:
        _start_saving(library, images, on_done)
        return True

    if status is AuthorizationStatus.NOT_DETERMINED:

        def _on_authorization(result: AuthorizationStatus) -> None:
            if result.can_write:
                _start_saving(library, images, on_done)
            elif result is AuthorizationStatus.RESTRICTED:
                on_status(RESTRICTED_MESSAGE)
            else:
                on_status(DENIED_MESSAGE)

        library.request_authorization(_on_authorization)
        return True

    if status is AuthorizationStatus.RESTRICTED:
        on_status(RESTRICTED_MESSAGE)
    else:
        on_status(DENIED_MESSAGE)
    return False


def _write_png(root: Path, image: Image.Image) -> bool:
    path = root / f"qr-{uuid.uuid4().hex}.png"
    try:
        image.save(path, format="PNG")
    except (OSError, ValueError) as exc:
        logger.warning("Could not save %s: %s", path, exc)
        return False
    return True


def export_images(images: Sequence[Image.Image], directory: str | os.PathLike[str]) -> SaveReport:
    """Write ``images`` as PNG files into ``directory``, creating it if needed."""

    root = Path(directory)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Could not create export folder %s: %s", root, exc)
        return SaveReport(0, len(images))

    succeeded = sum(1 for image in images if _write_png(root, image))
    logger.info("Exported %d of %d images to %s", succeeded, len(images), root)
    return SaveReport(succeeded, len(images) - succeeded)


class DirectoryPhotoLibrary:
    """A photo library that is a plain directory of PNG files.

    Writes run on a thread pool; callbacks fire on the worker threads.
    """

    def __init__(self, root: str | os.PathLike[str], max_workers: int = 4, executor: Optional[Executor] = None):
        self._root = Path(root)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="photo-library"
        )

    @property
    def root(self) -> Path:
        return self._root

    def authorization_status(self) -> AuthorizationStatus:
        if self._root.is_dir():
            if os.access(self._root, os.W_OK):
                return AuthorizationStatus.AUTHORIZED
            return AuthorizationStatus.DENIED
        if self._root.exists():
            return AuthorizationStatus.RESTRICTED
        return AuthorizationStatus.NOT_DETERMINED

    def request_authorization(self, callback: Callable[[AuthorizationStatus], None]) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create photo library at %s: %s", self._root, exc)
        callback(self.authorization_status())

    def _write(self, image: Image.Image) -> bool:
        return _write_png(self._root, image)

    def write(self, image: Image.Image, callback: Callable[[bool], None]) -> None:
        future = self._executor.submit(self._write, image)

        def _done(done_future) -> None:
            exc = done_future.exception()
            if exc is not None:
                logger.error("Photo library write failed: %s", exc)
            callback(exc is None and bool(done_future.result()))

        future.add_done_callback(_done)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)


__all__ = [
    "AuthorizationStatus",
    "SaveReport",
    "PhotoLibrary",
    "BatchSaveJoin",
    "save_to_library",
    "export_images",
    "DirectoryPhotoLibrary",
    "DENIED_MESSAGE",
    "RESTRICTED_MESSAGE",
]
