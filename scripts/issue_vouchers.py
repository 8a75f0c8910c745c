"""
Issue gift vouchers for a purchase and print the email body to send.
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

from sqlalchemy.exc import SQLAlchemyError

from advent_backend.config import get_settings
from advent_backend.db import SqlDbClient
from advent_backend.errors import BackendError
from advent_backend.vouchers import CALENDARS_PER_TIER, generate_vouchers, voucher_email_body

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Issue gift vouchers")
    parser.add_argument("purchase_id", help="Payment/purchase identifier")
    parser.add_argument(
        "-n",
        "--count",
        type=int,
        default=1,
        help="How many vouchers to issue",
    )
    parser.add_argument(
        "-t",
        "--tier",
        choices=sorted(CALENDARS_PER_TIER),
        default="deluxe",
        help="Tier the vouchers unlock",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    if args.count < 1:
        logger.error("--count must be at least 1")
        return 1

    database_url = get_settings().database_url
    if not database_url:
        logger.error("DATABASE_URL is not set; refusing to issue vouchers that cannot be stored")
        return 1

    issued = generate_vouchers(args.count, args.tier, args.purchase_id)
    try:
        SqlDbClient(database_url).save_vouchers(issued)
    except (BackendError, SQLAlchemyError) as exc:
        logger.error("Failed to store vouchers: %s", exc)
        return 1

    logger.info("Issued %d %s voucher(s) for %s", len(issued), args.tier, args.purchase_id)
    print(voucher_email_body(issued))
    return 0


if __name__ == "__main__":
    sys.exit(main())
