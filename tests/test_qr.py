from __future__ import annotations

import io
import sys
import types

import pytest
from PIL import Image

from qr_collections.config import AppConfig
from qr_collections.qr import QRCodeManager


def _install_fake_segno(monkeypatch, calls=None, fail=False):
    class DummyQR:
        def save(self, target, *_args, **kwargs):
            if calls is not None:
                calls.append((target, kwargs))
            Image.new("RGB", (33, 33), "white").save(target, format="PNG")

    def fake_make(data, **kwargs):
        if fail:
            raise ValueError("data too large")
        if calls is not None:
            calls.append((data, kwargs))
        return DummyQR()

    monkeypatch.setitem(sys.modules, "segno", types.SimpleNamespace(make=fake_make))


def test_render_returns_bitmap(monkeypatch):
    calls = []
    _install_fake_segno(monkeypatch, calls)
    manager = QRCodeManager(AppConfig())

    image = manager.render("hello")

    assert image is not None
    assert image.size == (33, 33)
    assert calls[0] == ("hello", {"error": "M", "micro": False})
    assert calls[1][1] == {"kind": "png", "scale": 10, "border": 4}


def test_render_png_is_png(monkeypatch):
    _install_fake_segno(monkeypatch)
    manager = QRCodeManager(AppConfig())

    data = manager.render_png("hello")

    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "PNG"


@pytest.mark.parametrize("text", ["", "   "])
def test_render_rejects_blank_text(monkeypatch, text):
    _install_fake_segno(monkeypatch)
    manager = QRCodeManager(AppConfig())

    assert manager.render(text) is None
    with pytest.raises(ValueError):
        manager.render_png(text)


def test_render_returns_none_when_segno_fails(monkeypatch):
    _install_fake_segno(monkeypatch, fail=True)
    manager = QRCodeManager(AppConfig())

    assert manager.render("x" * 5000) is None


def test_save_png_returns_path(monkeypatch, tmp_path):
    calls = []
    _install_fake_segno(monkeypatch, calls)
    manager = QRCodeManager(AppConfig(qr_scale=4, qr_border=2))
    output = tmp_path / "qr.png"

    result = manager.save_png("payload", str(output))

    assert result == str(output)
    assert output.exists()
    assert calls[-1][1] == {"scale": 4, "border": 2}


def test_render_with_segno():
    pytest.importorskip("segno")
    manager = QRCodeManager(AppConfig())

    image = manager.render("https://example.com")

    assert image is not None
    assert image.width > 21 * manager.config.qr_scale


def test_decode_qr_payload_returns_text():
    assert QRCodeManager.decode_qr_payload("привет".encode("utf-8")) == "привет"
    assert QRCodeManager.decode_qr_payload(b"hello\n") == "hello"


@pytest.mark.parametrize("data", [b"", b"\n", b"\xff\xfe\x00"])
def test_decode_qr_payload_rejects_blank_or_binary(data):
    assert QRCodeManager.decode_qr_payload(data) is None
