"""
Apply the session-events migration to the D1 database.

Usage:
  python scripts/migrate_d1.py           # remote database
  python scripts/migrate_d1.py --local   # local wrangler database
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
from advent_backend.migrations import MigrationError, run_d1_migration

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run D1 database migration")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Apply to the local wrangler database instead of the remote one",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()

    try:
        run_d1_migration(
            settings.d1_migration_file,
            settings.d1_database_name,
            local=args.local,
        )
    except MigrationError as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
