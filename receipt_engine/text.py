"""Line normalisation for recognised receipt text."""
from __future__ import annotations

from typing import List, Optional


def normalise_lines(raw_text: Optional[str]) -> List[str]:
    """Split ``raw_text`` into trimmed, non-empty lines, keeping their order."""

    if not raw_text:
        return []
    return [line for line in (line.strip() for line in raw_text.splitlines()) if line]


__all__ = ["normalise_lines"]
