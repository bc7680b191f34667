"""Command-line helpers for checking window discovery and capture by hand."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

try:
    from .capture import CaptureError, CaptureManager
    from .config import load_configs
    from .window import NULL_HANDLE, GameWindow, WindowLocator, set_dpi_aware
except ImportError:  # pragma: no cover - direct execution fallback
    sys.path.append(str(Path(__file__).resolve().parent.parent))
    from aigamer_os.capture import CaptureError, CaptureManager  # type: ignore
    from aigamer_os.config import load_configs  # type: ignore
    from aigamer_os.window import NULL_HANDLE, GameWindow, WindowLocator, set_dpi_aware  # type: ignore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Locate or capture the game console window.")
    parser.add_argument("--config", type=Path, default=Path("config.yaml"), help="Path to config YAML.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("locate", help="Print the handle, title and rectangle of the game window.")

    capture_parser = subparsers.add_parser("capture", help="Capture the game window once and save it as PNG.")
    capture_parser.add_argument("--capture-id", help="Identifier used for the capture filename.")

    return parser


def main(argv: list[str] | None = None) -> int:
    if not sys.platform.startswith("win32"):
        print("Window CLI must be run on Windows", file=sys.stderr)
        return 1

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format="[%(levelname)s] %(message)s")
    set_dpi_aware()

    config = load_configs(args.config)
    handle = WindowLocator(config.window).locate()
    if handle == NULL_HANDLE:
        logging.error("Game window not found")
        return 1

    window = GameWindow(handle)

    if args.command == "locate":
        rect = window.get_rect()
        print(f"Handle: {handle}")
        print(f"Title:  {window.title}")
        print(f"PID:    {window.process_id()}")
        print(f"Rect:   x={rect.left}, y={rect.top}, width={rect.width}, height={rect.height}")
        return 0

    config.capture.save_captures = True
    manager = CaptureManager(window, config.capture)
    capture_id = args.capture_id or datetime.now().strftime("%Y%m%d-%H%M%S")
    try:
        result = manager.capture(capture_id)
    except CaptureError as exc:
        logging.error("Capture failed: %s", exc)
        return 1

    logging.info("Capture stored at %s", result.path)
    logging.info(
        "Mean luminance %.2f / std %.2f across %dx%d",
        result.validation.mean_luminance,
        result.validation.stddev_luminance,
        result.validation.size_px[0],
        result.validation.size_px[1],
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - manual entry point
    raise SystemExit(main())
