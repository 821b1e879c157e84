"""Merchant extraction from the receipt header."""
from __future__ import annotations

from typing import Sequence

from ..record import MAX_MERCHANT_LENGTH, UNKNOWN_MERCHANT


def extract_merchant(lines: Sequence[str], max_length: int = MAX_MERCHANT_LENGTH) -> str:
    """Use the first line as the merchant label.

    Receipts print the store name at the top, so no scoring is attempted.
    """

    if not lines:
        return UNKNOWN_MERCHANT
    return lines[0][:max_length]


__all__ = ["extract_merchant"]
