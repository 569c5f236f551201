from __future__ import annotations

import base64
import io
import json

import pytest
from PIL import Image

from qr_collections.images import ImageStore
from qr_collections.models import Item
from qr_collections.persistence import (
    FORMAT_VERSION,
    DirectoryBackend,
    MemoryBackend,
    PersistenceAdapter,
)


@pytest.fixture()
def images(tmp_path) -> ImageStore:
    return ImageStore(tmp_path / "images")


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def adapter(backend, images) -> PersistenceAdapter:
    return PersistenceAdapter(backend, images)


def _fields(items):
    return [(item.id, item.text, item.image_path, item.is_selected) for item in items]


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), "black").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.parametrize("count", [0, 1, 5])
def test_save_then_load_roundtrip(adapter, count):
    items = [
        Item(text=f"text {index}", image_path=f"/data/{index}.png" if index % 2 else None, is_selected=index == 1)
        for index in range(count)
    ]

    assert adapter.save("generated", items)
    loaded = adapter.load("generated")

    assert _fields(loaded) == _fields(items)


def test_keys_are_independent(adapter):
    adapter.save("generated", [Item(text="g")])
    adapter.save("scanned", [Item(text="s")])

    assert [item.text for item in adapter.load("generated")] == ["g"]
    assert [item.text for item in adapter.load("scanned")] == ["s"]


def test_load_missing_key_is_empty(adapter):
    assert adapter.load("generated") == []


@pytest.mark.parametrize(
    "blob",
    [
        b"not json at all",
        b"\xff\xfe",
        b'{"version": 99, "items": []}',
        b'{"version": 2, "items": "nope"}',
        b'"a string"',
        b'[1, 2, 3]',
        b'[{"text": "missing id"}]',
    ],
)
def test_corrupt_blob_loads_empty(backend, adapter, blob):
    backend.set("generated", blob)

    assert adapter.load("generated") == []


def test_saved_blob_uses_current_format(backend, adapter):
    item = Item(text="hello")
    adapter.save("generated", [item])

    document = json.loads(backend.get("generated").decode("utf-8"))

    assert document["version"] == FORMAT_VERSION
    assert document["items"] == [item.to_record()]


def test_legacy_inline_images_are_migrated(backend, adapter, images):
    png = _png_bytes()
    legacy = [
        {"id": "A1", "text": "with image", "imageData": base64.b64encode(png).decode("ascii"), "isSelected": True},
        {"id": "B2", "text": "without image", "isSelected": False},
    ]
    backend.set("generated", json.dumps(legacy).encode("utf-8"))

    loaded = adapter.load("generated")

    assert [item.id for item in loaded] == ["A1", "B2"]
    assert loaded[0].is_selected is True
    assert loaded[0].image_path is not None
    assert images.decode(loaded[0].image_path) is not None
    assert loaded[1].image_path is None

    document = json.loads(backend.get("generated").decode("utf-8"))
    assert document["version"] == FORMAT_VERSION
    assert "imageData" not in json.dumps(document)
    assert document["items"][0]["imagePath"] == loaded[0].image_path


def test_legacy_migration_runs_once(backend, adapter, images):
    legacy = [{"id": "A1", "text": "x", "imageData": base64.b64encode(_png_bytes()).decode("ascii")}]
    backend.set("generated", json.dumps(legacy).encode("utf-8"))

    first = adapter.load("generated")
    second = adapter.load("generated")

    assert first[0].image_path == second[0].image_path
    assert len(list(images.root.iterdir())) == 1


def test_undecodable_legacy_image_is_dropped(backend, adapter):
    legacy = [{"id": "A1", "text": "x", "imageData": "***not base64***"}]
    backend.set("generated", json.dumps(legacy).encode("utf-8"))

    loaded = adapter.load("generated")

    assert len(loaded) == 1
    assert loaded[0].image_path is None


def test_save_failure_returns_false(images):
    class BrokenBackend:
        def get(self, key):
            return None

        def set(self, key, data):
            raise OSError("disk full")

    adapter = PersistenceAdapter(BrokenBackend(), images)

    assert adapter.save("generated", [Item(text="x")]) is False


def _stored_images(images):
    return sorted(images.root.glob("*.png")) if images.root.exists() else []


def test_rejected_legacy_blob_leaves_no_images(backend, adapter, images):
    encoded = base64.b64encode(_png_bytes()).decode("ascii")
    legacy = [
        {"id": "A1", "text": "first", "imageData": encoded},
        {"id": "B2", "text": "second", "imageData": encoded},
        {"id": "C3", "text": 42},
    ]
    backend.set("generated", json.dumps(legacy).encode("utf-8"))

    assert adapter.load("generated") == []
    assert _stored_images(images) == []


def test_failed_migration_save_leaves_no_images(images):
    legacy = [{"id": "A1", "text": "x", "imageData": base64.b64encode(_png_bytes()).decode("ascii")}]

    class ReadOnlyBackend:
        def get(self, key):
            return json.dumps(legacy).encode("utf-8")

        def set(self, key, data):
            raise OSError("read-only")

    loaded = PersistenceAdapter(ReadOnlyBackend(), images).load("generated")

    assert [item.text for item in loaded] == ["x"]
    assert loaded[0].image_path is None
    assert _stored_images(images) == []


def test_read_failure_loads_empty(images):
    class BrokenBackend:
        def get(self, key):
            raise OSError("unreadable")

        def set(self, key, data):
            pass

    assert PersistenceAdapter(BrokenBackend(), images).load("generated") == []


def test_directory_backend_roundtrip(tmp_path):
    backend = DirectoryBackend(tmp_path / "stores")

    assert backend.get("generated") is None
    backend.set("generated", b"payload")

    assert backend.get("generated") == b"payload"
    assert (tmp_path / "stores" / "generated.json").read_bytes() == b"payload"
    assert not list((tmp_path / "stores").glob("*.tmp"))


def test_directory_backend_rejects_path_keys(tmp_path):
    backend = DirectoryBackend(tmp_path)

    with pytest.raises(ValueError):
        backend.set("../escape", b"x")


def test_adapter_over_directory_backend(tmp_path, images):
    adapter = PersistenceAdapter(DirectoryBackend(tmp_path / "stores"), images)
    items = [Item(text="one"), Item(text="two", is_selected=True)]

    adapter.save("scanned", items)
    reopened = PersistenceAdapter(DirectoryBackend(tmp_path / "stores"), images)

    assert _fields(reopened.load("scanned")) == _fields(items)
    assert reopened.load("../bad") == []
