"""Move scanned codes into the generated collection."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from PIL import Image

from .models import Item
from .store import CollectionStore

logger = logging.getLogger(__name__)

Renderer = Callable[[str], Optional[Image.Image]]


def move_selected(source: CollectionStore, target: CollectionStore, render: Renderer) -> List[Item]:
    """Copy the visible selected items of ``source`` into ``target``.

    Texts already present in ``target`` are skipped, and every copied item
    gets a freshly rendered image instead of the source picture. A failed
    render skips that item only. Afterwards ``target`` reveals one more page
    and ``source`` is deselected. Returns the items created in ``target``.
    """

    added: List[Item] = []
    for item in source.selected_items():
        if target.contains_text(item.text):
            logger.debug("Skipping %r, already in %r", item.text, target.key)
            continue

        try:
            image = render(item.text)
        except Exception:
            logger.exception("Rendering %r failed", item.text)
            continue
        if image is None:
            logger.warning("Skipping %r, no image could be rendered", item.text)
            continue

        created = target.add(item.text, image)
        if created is not None:
            added.append(created)

    target.reveal_more()
    source.deselect_all()
    logger.info("Moved %d item(s) from %r to %r", len(added), source.key, target.key)
    return added


__all__ = ["move_selected", "Renderer"]
