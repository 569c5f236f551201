"""Value types shared by the generated and scanned collections."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


def new_item_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True, eq=False)
class Item:
    """A single QR entry.

    ``id`` is fixed at creation; ``text`` and ``is_selected`` change in place.
    ``image_path`` points at the rendered PNG kept by :class:`~qr_collections.images.ImageStore`.
    Two items are equal when they share an ``id``.
    """

    text: str
    image_path: Optional[str] = None
    is_selected: bool = False
    id: str = field(default_factory=new_item_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_record(self) -> Dict[str, Any]:
        """Return the JSON-friendly record stored by the persistence adapter."""

        return {
            "id": self.id,
            "text": self.text,
            "imagePath": self.image_path,
            "isSelected": self.is_selected,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Item":
        """Build an item from a stored record.

        Legacy ``imageData`` fields are ignored here; the persistence adapter
        migrates them before calling this.
        """

        if not isinstance(record, Mapping):
            raise ValueError("Item record must be a mapping")

        item_id = record.get("id")
        text = record.get("text")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("Item record has no valid id")
        if not isinstance(text, str):
            raise ValueError(f"Item record {item_id} has no text")

        image_path = record.get("imagePath")
        if image_path is not None and not isinstance(image_path, str):
            raise ValueError(f"Item record {item_id} has an invalid image path")

        is_selected = record.get("isSelected", False)
        if not isinstance(is_selected, bool):
            raise ValueError(f"Item record {item_id} has an invalid selection flag")

        return cls(
            id=item_id,
            text=text,
            image_path=image_path,
            is_selected=is_selected,
        )


__all__ = ["Item", "new_item_id"]
