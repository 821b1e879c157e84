from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def fixed_today() -> dt.date:
    return dt.date(2024, 6, 1)


@pytest.fixture
def grocery_receipt() -> str:
    return "\r\n".join(
        [
            "  FRESH MART SUPERMARKET  ",
            "123 Main Street",
            "",
            "Date: 15/03/2024  14:22",
            "Milk            $3.50",
            "Bread           $5.00",
            "Cheese         $12.00",
            "   ",
            "TOTAL: $20.50",
            "CASH           $50.00",
            "CHANGE         $29.50",
        ]
    )
