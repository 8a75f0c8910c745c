"""
Delete original photo assets once a compressed counterpart exists.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from advent_backend.config import get_settings
from advent_backend.photos import remove_originals

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Remove originals that have compressed versions")
    parser.add_argument(
        "--photos-dir",
        type=str,
        default=None,
        help="Directory holding the photo assets (defaults to PHOTOS_DIR)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the files that would be deleted without deleting them",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    photos_dir = args.photos_dir or get_settings().photos_dir

    try:
        stats = remove_originals(photos_dir, dry_run=args.dry_run)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Deleted: %d files", stats.deleted)
    if stats.errors:
        logger.warning("Errors/Skipped: %d files", stats.errors)
    return 0


if __name__ == "__main__":
    sys.exit(main())
