"""Rule-based amount extraction utilities."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

# Symbol-less tokens never start on whitespace and digit runs are bounded, so
# scanning stays linear in the line length.
AMOUNT_PATTERN = re.compile(r"(?:[$€£¥₹]\s*)?(\d{1,15}[.,]\d{2})")
TOTAL_KEYWORDS = ("total", "amount")

_LABELLED_STRIP = re.compile(r"[$€£¥₹,\s]")


@dataclass
class AmountCandidate:
    value: Decimal
    raw_text: str
    line_index: int
    labelled: bool = False


@dataclass
class AmountExtraction:
    best: Optional[Decimal]
    candidates: List[AmountCandidate] = field(default_factory=list)


def _normalise_number(text: str) -> Optional[Decimal]:
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def _labelled_value(line: str) -> Optional[Decimal]:
    match = AMOUNT_PATTERN.search(line)
    if not match:
        return None
    # The whole match is used here, so commas are dropped rather than read as
    # a decimal separator.
    return _normalise_number(_LABELLED_STRIP.sub("", match.group(0)))


def extract_amount(lines: Sequence[str]) -> AmountExtraction:
    """Pick the most likely grand total from normalised receipt lines.

    The first line mentioning ``total`` or ``amount`` wins. Without such a
    line, the largest currency-shaped number is used.
    """

    candidates: List[AmountCandidate] = []
    labelled: Optional[Decimal] = None
    for index, line in enumerate(lines):
        for match in AMOUNT_PATTERN.finditer(line):
            raw = match.group(1)
            value = _normalise_number(raw.replace(",", "."))
            if value is None:
                continue
            candidates.append(AmountCandidate(value=value, raw_text=raw, line_index=index))

        lowered = line.lower()
        if labelled is None and any(keyword in lowered for keyword in TOTAL_KEYWORDS):
            value = _labelled_value(line)
            if value is not None:
                labelled = value
                candidates.append(
                    AmountCandidate(value=value, raw_text=line, line_index=index, labelled=True)
                )

    if labelled is not None:
        return AmountExtraction(best=labelled, candidates=candidates)
    values = [candidate.value for candidate in candidates]
    return AmountExtraction(best=max(values) if values else None, candidates=candidates)


__all__ = ["AMOUNT_PATTERN", "AmountCandidate", "AmountExtraction", "extract_amount"]
