"""
Gift voucher codes for deluxe purchases.

Codes look like ``XMAS-ABCD-EFGH-JKLM`` and avoid characters that are easy
to confuse when read aloud or typed (0/O, 1/I).
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Literal, Optional

from dateutil.relativedelta import relativedelta

VOUCHER_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
VOUCHER_PREFIX = "XMAS"
SEGMENTS = 3
SEGMENT_LENGTH = 4
EXPIRATION_MONTHS = 12

VOUCHER_PATTERN = re.compile(r"^XMAS-[A-Z2-9]{4}-[A-Z2-9]{4}-[A-Z2-9]{4}$")

TierId = Literal["basic", "premium", "deluxe"]

CALENDARS_PER_TIER: dict[str, int] = {
    "basic": 1,
    "premium": 3,
    "deluxe": 5,
}

REDEEM_URL = "https://magicavecalendars.com/redeem"
SUPPORT_EMAIL = "support@magicavecalendars.com"


class VoucherError(Exception):
    """Raised when a voucher cannot be redeemed."""


@dataclass
class GiftVoucher:
    code: str
    tier_id: str
    calendars_count: int
    expires_at: datetime
    created_at: datetime
    purchase_id: str
    redeemed_at: Optional[datetime] = None
    redeemed_by: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "tier_id": self.tier_id,
            "calendars_count": self.calendars_count,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "purchase_id": self.purchase_id,
            "redeemed_at": self.redeemed_at.isoformat() if self.redeemed_at else None,
            "redeemed_by": self.redeemed_by,
        }


def generate_voucher_code() -> str:
    segments = [
        "".join(secrets.choice(VOUCHER_ALPHABET) for _ in range(SEGMENT_LENGTH))
        for _ in range(SEGMENTS)
    ]
    return "-".join([VOUCHER_PREFIX, *segments])


def generate_vouchers(
    count: int, tier_id: TierId, purchase_id: str, *, now: Optional[datetime] = None
) -> list[GiftVoucher]:
    """Create `count` unredeemed vouchers for a purchase."""
    if tier_id not in CALENDARS_PER_TIER:
        raise ValueError(f"Unknown tier: {tier_id}")
    now = now or datetime.now(timezone.utc)
    expires_at = now + relativedelta(months=EXPIRATION_MONTHS)
    return [
        GiftVoucher(
            code=generate_voucher_code(),
            tier_id=tier_id,
            calendars_count=CALENDARS_PER_TIER[tier_id],
            expires_at=expires_at,
            created_at=now,
            purchase_id=purchase_id,
        )
        for _ in range(count)
    ]


def validate_voucher_code(code: str) -> bool:
    return bool(VOUCHER_PATTERN.match(code or ""))


def is_expired(voucher: GiftVoucher, *, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return now > voucher.expires_at


def is_redeemed(voucher: GiftVoucher) -> bool:
    return voucher.redeemed_at is not None


def redeem_voucher(
    voucher: GiftVoucher, user_id: str, *, now: Optional[datetime] = None
) -> GiftVoucher:
    """Return a redeemed copy of `voucher`; the input is left untouched."""
    now = now or datetime.now(timezone.utc)
    if is_redeemed(voucher):
        raise VoucherError("Voucher has already been redeemed")
    if is_expired(voucher, now=now):
        raise VoucherError("Voucher has expired")
    return replace(voucher, redeemed_at=now, redeemed_by=user_id)


def format_voucher_for_display(voucher: GiftVoucher) -> str:
    return " - ".join(voucher.code.split("-"))


def voucher_email_body(vouchers: list[GiftVoucher]) -> str:
    if not vouchers:
        raise ValueError("At least one voucher is required")
    first = vouchers[0]
    voucher_list = "\n".join(
        f"{i}. {format_voucher_for_display(v)}" for i, v in enumerate(vouchers, start=1)
    )
    plural = "s" if len(vouchers) > 1 else ""
    calendar_plural = "s" if first.calendars_count > 1 else ""
    return (
        "Thank you for your Deluxe Gift Purchase!\n\n"
        f"You've received {len(vouchers)} gift voucher{plural} that you can share "
        "with family and friends:\n\n"
        f"{voucher_list}\n\n"
        "Each voucher includes:\n"
        f"- {first.calendars_count} advent calendar{calendar_plural}\n"
        "- All premium features\n"
        "- Lifetime access\n\n"
        "How to redeem:\n"
        f"1. Visit {REDEEM_URL}\n"
        "2. Enter the voucher code\n"
        "3. Create an account or sign in\n"
        "4. Start creating magical memories!\n\n"
        f"Vouchers expire on: {first.expires_at.date().isoformat()}\n\n"
        f"Questions? Contact {SUPPORT_EMAIL}\n\n"
        "Happy holidays!\n"
        "The Magic Cave Calendars Team"
    )
