"""Window-rectangle capture utilities for the game console."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .config import CaptureConfig
from .window import GameWindow, Rect, WindowRectError

try:  # pragma: no cover - import validated at runtime
    import mss
except Exception:  # pragma: no cover
    mss = None

Logger = logging.Logger


@dataclass(slots=True)
class CaptureValidation:
    """Basic image statistics used to validate captured content."""

    mean_luminance: float
    stddev_luminance: float
    size_px: Tuple[int, int]


@dataclass(slots=True)
class CaptureResult:
    """Return value from a capture call."""

    capture_id: str
    rect: Rect
    image: Image.Image
    validation: CaptureValidation
    path: Optional[Path] = None


class CaptureError(RuntimeError):
    """Raised when capture fails validation or system calls."""


class CaptureManager:
    """Grabs the pixels covered by the game window's on-screen rectangle."""

    def __init__(self, window: GameWindow, config: CaptureConfig, logger: Optional[Logger] = None) -> None:
        self._window = window
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._output_dir = config.output_dir
        if config.save_captures:
            self._output_dir.mkdir(parents=True, exist_ok=True)

    def capture(self, capture_id: Optional[str] = None) -> CaptureResult:
        """Capture the current window rectangle.

        Args:
            capture_id: Stem used when the capture is written to disk. Defaults
                to a timestamp.

        Raises:
            CaptureError: If the rectangle cannot be read, is empty, or the
                image fails validation.
        """

        capture_id = capture_id or datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        try:
            rect = self._window.get_rect()
        except (WindowRectError, RuntimeError) as exc:
            raise CaptureError(str(exc)) from exc

        if rect.width <= 0 or rect.height <= 0:
            raise CaptureError(f"Window rectangle is empty ({rect.width}x{rect.height})")

        screenshot = self._grab(self._build_bbox(rect))
        image = self._to_image(screenshot)
        validation = self._validate_capture(image, rect)

        path: Optional[Path] = None
        if self._config.save_captures:
            path = self._save(image, capture_id)
            self._enforce_retention()

        return CaptureResult(capture_id=capture_id, rect=rect, image=image, validation=validation, path=path)

    def _build_bbox(self, rect: Rect) -> dict:
        return {"left": rect.left, "top": rect.top, "width": rect.width, "height": rect.height}

    def _grab(self, bbox: dict) -> "mss.base.ScreenShot":
        self._logger.debug("Capturing screen region %s", bbox)
        if mss is None:
            raise CaptureError("mss library is not available; install dependency before capturing")
        with mss.mss() as sct:
            return sct.grab(bbox)

    def _to_image(self, screenshot: "mss.base.ScreenShot") -> Image.Image:
        return Image.frombytes("RGB", screenshot.size, screenshot.rgb)

    def _validate_capture(self, image: Image.Image, rect: Rect) -> CaptureValidation:
        if image.width != rect.width or image.height != rect.height:
            raise CaptureError(
                f"Capture size {image.width}x{image.height} did not match window {rect.width}x{rect.height}"
            )

        array = np.asarray(image, dtype=np.float32)
        luminance = 0.2126 * array[:, :, 0] + 0.7152 * array[:, :, 1] + 0.0722 * array[:, :, 2]
        mean_luma = float(luminance.mean())
        std_luma = float(luminance.std())

        validation_cfg = self._config.validation
        if mean_luma < validation_cfg.min_mean_luminance:
            raise CaptureError(f"Capture luminance too low ({mean_luma:.2f} < {validation_cfg.min_mean_luminance})")
        if std_luma < validation_cfg.min_luminance_stddev:
            raise CaptureError(
                f"Capture appears uniform (std {std_luma:.2f} < {validation_cfg.min_luminance_stddev})"
            )

        return CaptureValidation(mean_luminance=mean_luma, stddev_luminance=std_luma, size_px=(image.width, image.height))

    def _save(self, image: Image.Image, stem: str) -> Path:
        safe_stem = re.sub(r"[^A-Za-z0-9._-]", "_", stem)
        path = self._output_dir / f"{safe_stem}.png"
        image.save(path, format="PNG")
        self._logger.debug("Saved capture to %s", path)
        return path

    def _enforce_retention(self) -> None:
        max_captures = self._config.retention.max_captures
        if max_captures <= 0:
            return

        files = sorted(self._output_dir.glob("*.png"), key=lambda p: p.stat().st_mtime)
        excess = len(files) - max_captures
        for victim in files[:excess]:
            self._logger.debug("Deleting old capture %s", victim)
            victim.unlink(missing_ok=True)


__all__ = [
    "CaptureError",
    "CaptureManager",
    "CaptureResult",
    "CaptureValidation",
]
