from __future__ import annotations

import pytest
from PIL import Image

from qr_collections.gallery import AuthorizationStatus
from qr_collections.images import ImageStore
from qr_collections.persistence import MemoryBackend, PersistenceAdapter
from qr_collections.scanner import ScanIntake, camera_status_message
from qr_collections.store import ScanStore


@pytest.fixture()
def images(tmp_path) -> ImageStore:
    return ImageStore(tmp_path / "images")


@pytest.fixture()
def store(images) -> ScanStore:
    scan_store = ScanStore(PersistenceAdapter(MemoryBackend(), images), images)
    scan_store.initialize()
    return scan_store


def render(text):
    return Image.new("RGB", (8, 8), "white")


def test_new_payload_is_stored_with_image(store, images):
    intake = ScanIntake(store, render)

    item = intake.submit("https://example.com")

    assert store.items == (item,)
    assert images.decode(item.image_path) is not None


def test_repeated_frames_are_ignored(store):
    intake = ScanIntake(store, render)

    for _ in range(5):
        intake.submit("same")

    assert [item.text for item in store.all_items] == ["same"]
    assert intake.last_payload == "same"


def test_known_text_is_not_stored_again(store):
    intake = ScanIntake(store)
    intake.submit("first")
    intake.submit("second")

    assert intake.submit("first") is None
    intake.reset()
    assert intake.submit("second") is None

    assert [item.text for item in store.all_items] == ["second", "first"]


@pytest.mark.parametrize("payload", [None, "", "  \n"])
def test_blank_payloads_are_ignored(store, payload):
    assert ScanIntake(store, render).submit(payload) is None
    assert len(store) == 0


def test_render_failure_still_stores_text(store):
    def broken_render(text):
        raise RuntimeError("no renderer")

    item = ScanIntake(store, broken_render).submit("text only")

    assert item is not None
    assert item.image_path is None


@pytest.mark.parametrize("status", list(AuthorizationStatus))
def test_every_camera_status_has_a_message(status):
    assert camera_status_message(status)


def test_camera_status_messages():
    assert "No access" in camera_status_message(AuthorizationStatus.DENIED)
    assert "ready" in camera_status_message(AuthorizationStatus.AUTHORIZED)
    assert camera_status_message(None) == "Unknown camera access status"


def test_image_rendered_later_is_attached_by_id(store, images):
    intake = ScanIntake(store)
    first = intake.submit("first")
    second = intake.submit("second")
    store.set_selected(second.id, True)

    assert first.image_path is None
    assert store.attach_image(first.id, render(first.text)) is True

    assert store.all_items == (second, first)
    assert images.decode(store.get(first.id).image_path) is not None
    assert store.get(second.id).image_path is None
