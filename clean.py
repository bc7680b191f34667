#!/usr/bin/env python3
"""Clean up session logs and saved captures."""

import argparse
import shutil
from pathlib import Path
from typing import List


def clean_directory(dir_path: Path) -> int:
    """Remove all contents of a directory but keep the directory itself."""
    if not dir_path.exists():
        print(f"  {dir_path} does not exist, skipping")
        return 0

    if not dir_path.is_dir():
        print(f"  {dir_path} is not a directory, skipping")
        return 0

    count = 0
    for item in dir_path.iterdir():
        if item.is_file():
            item.unlink()
            count += 1
        elif item.is_dir():
            shutil.rmtree(item)
            count += 1

    print(f"  Removed {count} items from {dir_path}")
    return count


def resolve_targets(target: str, logs_dir: Path, captures_dir: Path) -> List[Path]:
    target_map = {
        "all": [logs_dir, captures_dir],
        "log": [logs_dir],
        "cap": [captures_dir],
    }
    return target_map[target]


def main(argv=None) -> None:
    """Clean logs and captures directories."""
    parser = argparse.ArgumentParser(
        description="Clean up project directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python clean.py       # Clean logs and captures (default)
  python clean.py log   # Clean only the logs/ directory
  python clean.py cap   # Clean only the captures/ directory
        """,
    )
    parser.add_argument(
        "target",
        nargs="?",
        default="all",
        choices=["all", "log", "cap"],
        help="What to clean: 'all', 'log', or 'cap'. If omitted, cleans logs and captures.",
    )
    parser.add_argument("--logs-dir", type=Path, default=Path("logs"), help="Session log directory.")
    parser.add_argument("--captures-dir", type=Path, default=Path("captures"), help="Capture directory.")

    args = parser.parse_args(argv)

    if args.target == "all":
        print("Cleaning logs and captures directories...")
    else:
        print(f"Cleaning {args.target} directory...")

    for dir_path in resolve_targets(args.target, args.logs_dir, args.captures_dir):
        clean_directory(dir_path)

    print("Done!")


if __name__ == "__main__":
    main()
