"""Tests for window capture, validation and retention."""
from __future__ import annotations

import os
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

from aigamer_os.capture import CaptureError, CaptureManager
from aigamer_os.config import CaptureConfig, RetentionConfig
from aigamer_os.window import Rect, WindowRectError


class _StubWindow:
    def __init__(self, rect: Rect) -> None:
        self.rect = rect

    def get_rect(self) -> Rect:
        if isinstance(self.rect, Exception):
            raise self.rect
        return self.rect


class _FakeCaptureManager(CaptureManager):
    """Capture manager that grabs from an in-memory image instead of the screen."""

    def __init__(self, *args, frame: Image.Image, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.frame = frame
        self.bboxes = []

    def _grab(self, bbox: dict):
        self.bboxes.append(bbox)
        return SimpleNamespace(size=self.frame.size, rgb=self.frame.tobytes())


def _striped(width: int, height: int) -> Image.Image:
    image = Image.new("RGB", (width, height), "black")
    for x in range(0, width, 2):
        for y in range(height):
            image.putpixel((x, y), (255, 255, 255))
    return image


def test_capture_returns_rgb_image_of_window_rect(tmp_path: Path) -> None:
    window = _StubWindow(Rect(left=10, top=20, width=40, height=30))
    manager = _FakeCaptureManager(window, CaptureConfig(output_dir=tmp_path), frame=_striped(40, 30))

    result = manager.capture("one")

    assert manager.bboxes == [{"left": 10, "top": 20, "width": 40, "height": 30}]
    assert result.image.mode == "RGB"
    assert result.image.size == (40, 30)
    assert result.path is None
    assert result.validation.size_px == (40, 30)
    assert list(tmp_path.iterdir()) == []


def test_uniform_capture_is_rejected(tmp_path: Path) -> None:
    window = _StubWindow(Rect(left=0, top=0, width=16, height=16))
    manager = _FakeCaptureManager(
        window, CaptureConfig(output_dir=tmp_path), frame=Image.new("RGB", (16, 16), "black")
    )

    with pytest.raises(CaptureError):
        manager.capture("blank")


def test_empty_or_unreadable_rect_raises(tmp_path: Path) -> None:
    config = CaptureConfig(output_dir=tmp_path)

    empty = _FakeCaptureManager(_StubWindow(Rect(0, 0, 0, 10)), config, frame=_striped(2, 2))
    with pytest.raises(CaptureError):
        empty.capture()

    broken = _FakeCaptureManager(_StubWindow(WindowRectError("gone")), config, frame=_striped(2, 2))
    with pytest.raises(CaptureError, match="gone"):
        broken.capture()


def test_saved_captures_respect_retention(tmp_path: Path) -> None:
    config = CaptureConfig(output_dir=tmp_path / "caps", save_captures=True, retention=RetentionConfig(max_captures=2))
    window = _StubWindow(Rect(left=0, top=0, width=8, height=8))
    manager = _FakeCaptureManager(window, config, frame=_striped(8, 8))

    paths = []
    for index in range(4):
        result = manager.capture(f"cycle {index}")
        paths.append(result.path)
        os.utime(result.path, (1_000_000 + index, 1_000_000 + index))

    remaining = sorted(p.name for p in (tmp_path / "caps").glob("*.png"))
    assert paths[0].name == "cycle_0.png"
    assert remaining == ["cycle_2.png", "cycle_3.png"]
