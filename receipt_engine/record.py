"""Structured receipt record returned by the extraction engine."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

MAX_MERCHANT_LENGTH = 50

# Text was recognised but no line could serve as a merchant label.
UNKNOWN_MERCHANT = "Unknown Merchant"
# Recognition was skipped, failed or timed out.
RECEIPT_UPLOADED = "Receipt Uploaded"

SENTINEL_MERCHANTS = frozenset({UNKNOWN_MERCHANT, RECEIPT_UPLOADED})


@dataclass(frozen=True)
class ExtractedRecord:
    """Best-effort ``{amount, merchant, date}`` triple for pre-filling a form."""

    amount: Optional[Decimal]
    merchant: str
    date: dt.date

    @property
    def needs_review(self) -> bool:
        return self.amount is None or self.merchant in SENTINEL_MERCHANTS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": float(self.amount) if self.amount is not None else None,
            "merchant": self.merchant,
            "date": self.date.isoformat(),
        }


def today_in(timezone: Optional[str] = None) -> dt.date:
    """Return the current date, optionally in the IANA ``timezone`` given."""

    if not timezone:
        return dt.date.today()
    return dt.datetime.now(ZoneInfo(timezone)).date()


def fallback_record(today: Optional[dt.date] = None) -> ExtractedRecord:
    return ExtractedRecord(amount=None, merchant=RECEIPT_UPLOADED, date=today or dt.date.today())


__all__ = [
    "ExtractedRecord",
    "MAX_MERCHANT_LENGTH",
    "RECEIPT_UPLOADED",
    "SENTINEL_MERCHANTS",
    "UNKNOWN_MERCHANT",
    "fallback_record",
    "today_in",
]
