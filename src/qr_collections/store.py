"""Collection stores for generated and scanned QR codes.

Both stores keep the full ordered list of items and expose a growing prefix
of it (the reveal window) to the UI. Every mutation is written back through
the :class:`~qr_collections.persistence.PersistenceAdapter` before returning.

Stores are not thread safe; all calls must come from one owner (the Qt main
thread in the desktop app).
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from PIL import Image

from .images import ImageStore
from .models import Item
from .persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 15

Listener = Callable[["CollectionStore"], None]


@runtime_checkable
class Updatable(Protocol):
    """Anything whose items can be renamed by id, e.g. for the edit dialog."""

    def update(self, item_id: str, new_text: str) -> None:
        ...


class CollectionStore:
    """Ordered item collection with a reveal window and selection state."""

    def __init__(
        self,
        adapter: PersistenceAdapter,
        images: ImageStore,
        *,
        key: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._adapter = adapter
        self._images = images
        self._key = key
        self._batch_size = batch_size
        self._all: List[Item] = []
        self._reveal_count = 0
        self._loaded = False
        self._listeners: List[Listener] = []

    # -- observation -------------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def reveal_count(self) -> int:
        return min(self._reveal_count, len(self._all))

    @property
    def items(self) -> Tuple[Item, ...]:
        """The visible prefix."""

        return tuple(self._all[: self.reveal_count])

    @property
    def all_items(self) -> Tuple[Item, ...]:
        return tuple(self._all)

    @property
    def has_selection(self) -> bool:
        return any(item.is_selected for item in self.items)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def is_exhausted(self) -> bool:
        return self.reveal_count >= len(self._all)

    def __len__(self) -> int:
        return len(self._all)

    def get(self, item_id: str) -> Optional[Item]:
        for item in self._all:
            if item.id == item_id:
                return item
        return None

    def contains_text(self, text: str) -> bool:
        return any(item.text == text for item in self._all)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(store)`` after every visible or selection change."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener failed for %r", self._key)

    def _save(self) -> bool:
        if not self._loaded:
            logger.debug("Deferring save of %r until the collection is loaded", self._key)
            return False
        saved = self._adapter.save(self._key, self._all)
        if not saved:
            logger.warning("Changes to %r were not persisted", self._key)
        return saved

    # -- loading and pagination -------------------------------------------

    def _order(self, items: List[Item]) -> List[Item]:
        return items

    def _merge_pending(self, pending: List[Item], loaded: List[Item]) -> List[Item]:
        loaded_ids = {item.id for item in loaded}
        return [item for item in pending if item.id not in loaded_ids]

    def initialize(self) -> None:
        """Load the persisted collection and reveal the first page."""

        self.publish(self._adapter.load(self._key))

    def publish(self, items: Sequence[Item]) -> None:
        """Install a fully loaded item list in one step.

        Items added before the load landed were never written; they are kept
        in front of the loaded ones and the merged list is saved.
        """

        pending = [] if self._loaded else self._merge_pending(list(self._all), list(items))
        self._all = pending + self._order(list(items))
        self._reveal_count = 0
        self._loaded = True
        logger.debug("Published %d items to %r", len(self._all), self._key)
        if pending:
            self._save()
        if not self.reveal_more():
            self._notify()

    def reveal_more(self) -> bool:
        """Grow the reveal window by one batch; return ``False`` when exhausted."""

        current = self.reveal_count
        if current >= len(self._all):
            return False
        self._reveal_count = min(current + self._batch_size, len(self._all))
        self._notify()
        return True

    # -- mutation ----------------------------------------------------------

    def add(self, text: str, image: Optional[Image.Image] = None) -> Optional[Item]:
        """Insert a new item at the front.

        The item is revealed automatically only while the first page is
        still filling.
        """

        if not text or not text.strip():
            return None

        image_path = self._images.write(image) if image is not None else None
        item = Item(text=text, image_path=image_path)
        self._all.insert(0, item)

        count = self.reveal_count
        if count < self._batch_size:
            self._reveal_count = count + 1

        self._save()
        self._notify()
        return item

    def attach_image(self, item_id: str, image: Image.Image) -> bool:
        """Store an image rendered after the item was created."""

        item = self.get(item_id)
        if item is None:
            return False

        image_path = self._images.write(image)
        if image_path is None:
            return False

        previous = item.image_path
        item.image_path = image_path
        self._save()
        if previous:
            self._images.remove(previous)
        self._notify()
        return True

    def update(self, item_id: str, new_text: str) -> None:
        if not new_text or not new_text.strip():
            return
        item = self.get(item_id)
        if item is None:
            return
        item.text = new_text
        self._save()
        self._notify()

    def _remove(self, ids: set) -> List[Item]:
        removed = [item for item in self._all if item.id in ids]
        if removed:
            self._all = [item for item in self._all if item.id not in ids]
        return removed

    def delete(self, item_id: str) -> None:
        self.delete_many([item_id])

    def delete_many(self, item_ids: Iterable[str]) -> None:
        removed = self._remove(set(item_ids))
        if not removed:
            return
        self._save()
        for item in removed:
            if item.image_path:
                self._images.remove(item.image_path)
        self._notify()

    def delete_selected(self) -> None:
        self.delete_many([item.id for item in self.selected_items()])

    def set_selected(self, item_id: str, selected: bool) -> None:
        item = self.get(item_id)
        if item is None or item.is_selected == selected:
            return
        item.is_selected = selected
        self._save()
        self._notify()

    def _set_visible_selection(self, selected: bool) -> None:
        changed = False
        for item in self.items:
            if item.is_selected != selected:
                item.is_selected = selected
                changed = True
        if changed:
            self._save()
            self._notify()

    def select_all(self) -> None:
        self._set_visible_selection(True)

    def deselect_all(self) -> None:
        self._set_visible_selection(False)

    def selected_items(self) -> List[Item]:
        return [item for item in self.items if item.is_selected]

    def selected_images(self) -> List[Image.Image]:
        images = []
        for item in self.selected_items():
            image = self._images.decode(item.image_path)
            if image is not None:
                images.append(image)
        return images


class GeneratedStore(CollectionStore):
    """Codes created by the user; loaded in text order."""

    def __init__(self, adapter: PersistenceAdapter, images: ImageStore, *, key: str = "generated", batch_size: int = DEFAULT_BATCH_SIZE):
        super().__init__(adapter, images, key=key, batch_size=batch_size)

    def _order(self, items: List[Item]) -> List[Item]:
        return sorted(items, key=lambda item: item.text)


class ScanStore(CollectionStore):
    """Codes read from the camera; kept in the order they were stored."""

    def __init__(self, adapter: PersistenceAdapter, images: ImageStore, *, key: str = "scanned", batch_size: int = DEFAULT_BATCH_SIZE):
        super().__init__(adapter, images, key=key, batch_size=batch_size)

    def _merge_pending(self, pending: List[Item], loaded: List[Item]) -> List[Item]:
        known = {item.text for item in loaded}
        merged = []
        for item in super()._merge_pending(pending, loaded):
            if item.text in known:
                if item.image_path:
                    self._images.remove(item.image_path)
                continue
            merged.append(item)
        return merged

    def accept_scan(self, text: str, image: Optional[Image.Image] = None) -> Optional[Item]:
        """Add a scanned payload unless the same text is already stored."""

        if self.contains_text(text):
            logger.debug("Ignoring duplicate scan %r", text)
            return None
        return self.add(text, image)


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "Updatable",
    "CollectionStore",
    "GeneratedStore",
    "ScanStore",
]
