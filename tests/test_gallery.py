from __future__ import annotations

import random
import threading

import pytest
from PIL import Image

from qr_collections.gallery import (
    DENIED_MESSAGE,
    RESTRICTED_MESSAGE,
    AuthorizationStatus,
    BatchSaveJoin,
    DirectoryPhotoLibrary,
    SaveReport,
    export_images,
    save_to_library,
)


class FakeLibrary:
    def __init__(self, status, granted=AuthorizationStatus.AUTHORIZED, failing=()):
        self.status = status
        self.granted = granted
        self.failing = set(failing)
        self.written = []
        self.requests = 0

    def authorization_status(self):
        return self.status

    def request_authorization(self, callback):
        self.requests += 1
        self.status = self.granted
        callback(self.granted)

    def write(self, image, callback):
        index = len(self.written)
        self.written.append(image)
        if index in self.failing:
            raise OSError("write rejected")
        callback(True)


@pytest.fixture()
def bitmaps():
    return [Image.new("RGB", (6, 6), color) for color in ("white", "black", "red")]


def _collect():
    reports, messages = [], []
    return reports, messages, reports.append, messages.append


def test_report_message():
    report = SaveReport(succeeded=2, failed=1)

    assert report.total == 3
    assert report.message == "Saved 2 of 3. Errors: 1"


def test_join_fires_once_after_all_results():
    reports = []
    join = BatchSaveJoin(3, reports.append)

    join.record(True)
    join.record(False)
    assert reports == []
    assert join.pending == 1

    join.record(True)
    join.record(True)

    assert reports == [SaveReport(succeeded=2, failed=1)]


def test_join_requires_work():
    with pytest.raises(ValueError):
        BatchSaveJoin(0, lambda report: None)


def test_join_collects_results_from_many_threads():
    total = 64
    rng = random.Random(7)
    outcomes = [rng.random() < 0.7 for _ in range(total)]
    reports = []
    join = BatchSaveJoin(total, reports.append)
    start = threading.Barrier(total)

    def worker(outcome):
        start.wait()
        join.record(outcome)

    threads = [threading.Thread(target=worker, args=(outcome,)) for outcome in outcomes]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(reports) == 1
    assert reports[0].succeeded == sum(outcomes)
    assert reports[0].total == total


@pytest.mark.parametrize("status", [AuthorizationStatus.AUTHORIZED, AuthorizationStatus.LIMITED])
def test_authorized_library_saves_everything(bitmaps, status):
    library = FakeLibrary(status)
    reports, messages, on_done, on_status = _collect()

    assert save_to_library(library, bitmaps, on_done, on_status) is True

    assert library.written == bitmaps
    assert reports == [SaveReport(succeeded=3, failed=0)]
    assert messages == []


def test_not_determined_requests_then_saves(bitmaps):
    library = FakeLibrary(AuthorizationStatus.NOT_DETERMINED)
    reports, messages, on_done, on_status = _collect()

    assert save_to_library(library, bitmaps, on_done, on_status) is True

    assert library.requests == 1
    assert reports == [SaveReport(succeeded=3, failed=0)]


@pytest.mark.parametrize(
    ("granted", "message"),
    [
        (AuthorizationStatus.DENIED, DENIED_MESSAGE),
        (AuthorizationStatus.RESTRICTED, RESTRICTED_MESSAGE),
    ],
)
def test_not_determined_refused_reports_status(bitmaps, granted, message):
    library = FakeLibrary(AuthorizationStatus.NOT_DETERMINED, granted=granted)
    reports, messages, on_done, on_status = _collect()

    save_to_library(library, bitmaps, on_done, on_status)

    assert library.written == []
    assert reports == []
    assert messages == [message]


@pytest.mark.parametrize(
    ("status", "message"),
    [
        (AuthorizationStatus.DENIED, DENIED_MESSAGE),
        (AuthorizationStatus.RESTRICTED, RESTRICTED_MESSAGE),
    ],
)
def test_refused_library_reports_status(bitmaps, status, message):
    library = FakeLibrary(status)
    reports, messages, on_done, on_status = _collect()

    assert save_to_library(library, bitmaps, on_done, on_status) is False

    assert library.requests == 0
    assert messages == [message]
    assert reports == []


def test_empty_batch_is_noop():
    library = FakeLibrary(AuthorizationStatus.AUTHORIZED)
    reports, messages, on_done, on_status = _collect()

    assert save_to_library(library, [], on_done, on_status) is False
    assert reports == [] and messages == []


def test_failed_writes_are_counted(bitmaps):
    library = FakeLibrary(AuthorizationStatus.AUTHORIZED, failing={1})
    reports, messages, on_done, on_status = _collect()

    save_to_library(library, bitmaps, on_done, on_status)

    assert reports == [SaveReport(succeeded=2, failed=1)]


def test_directory_library_writes_in_background(tmp_path, bitmaps):
    library = DirectoryPhotoLibrary(tmp_path / "library", max_workers=2)
    assert library.authorization_status() is AuthorizationStatus.NOT_DETERMINED

    done = threading.Event()
    reports = []

    def on_done(report):
        reports.append(report)
        done.set()

    try:
        assert save_to_library(library, bitmaps, on_done, lambda message: None)
        assert done.wait(10)
    finally:
        library.close()

    assert reports == [SaveReport(succeeded=3, failed=0)]
    assert library.authorization_status() is AuthorizationStatus.AUTHORIZED
    assert len(list((tmp_path / "library").glob("*.png"))) == 3


def test_directory_library_blocked_by_file(tmp_path):
    blocker = tmp_path / "library"
    blocker.write_text("not a directory")
    library = DirectoryPhotoLibrary(blocker)
    messages = []

    try:
        started = save_to_library(library, [Image.new("RGB", (2, 2))], lambda report: None, messages.append)
    finally:
        library.close()

    assert started is False
    assert messages == [RESTRICTED_MESSAGE]


def test_export_writes_into_new_folder(tmp_path, bitmaps):
    target = tmp_path / "exports" / "today"

    report = export_images(bitmaps, target)

    assert report == SaveReport(succeeded=3, failed=0)
    assert len(list(target.glob("*.png"))) == 3


def test_export_counts_unwritable_images(tmp_path, bitmaps):
    class Unsavable:
        def save(self, path, format=None):
            raise OSError("encoder missing")

    report = export_images([bitmaps[0], Unsavable()], tmp_path / "out")

    assert report == SaveReport(succeeded=1, failed=1)
    assert report.message == "Saved 1 of 2. Errors: 1"


def test_export_into_a_file_fails_every_image(tmp_path, bitmaps):
    blocker = tmp_path / "out"
    blocker.write_text("not a directory")

    assert export_images(bitmaps, blocker) == SaveReport(succeeded=0, failed=3)
