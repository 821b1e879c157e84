"""Bounded-time orchestration around the external text recogniser.

``ReceiptProcessor.extract`` always resolves with an :class:`ExtractedRecord`.
Recognition that fails, hangs past the timeout or returns something other
than text degrades to the fallback record (no amount, ``RECEIPT_UPLOADED``
merchant, today's date) instead of raising.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
import time
from typing import Any, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .field_extractors import extract_amount, extract_date, extract_merchant
from .record import ExtractedRecord, fallback_record, today_in
from .text import normalise_lines

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Recognizer(Protocol):
    async def recognize(self, image_data: Any, *, timeout: Optional[float] = None) -> str:
        ...


def parse_receipt_text(raw_text: Optional[str], today: Optional[dt.date] = None) -> ExtractedRecord:
    """Run the normaliser and the three field extractors over ``raw_text``."""

    lines = normalise_lines(raw_text)
    return ExtractedRecord(
        amount=extract_amount(lines).best,
        merchant=extract_merchant(lines),
        date=extract_date(lines, today=today),
    )


class ReceiptProcessor:
    def __init__(
        self,
        recognizer: Recognizer,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        timezone: Optional[str] = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if timezone:
            try:
                ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"unknown timezone: {timezone}") from exc
        self._recognizer = recognizer
        self._timeout = timeout
        self._timezone = timezone

    @property
    def timeout(self) -> float:
        return self._timeout

    def today(self) -> dt.date:
        return today_in(self._timezone)

    def fallback_record(self) -> ExtractedRecord:
        return fallback_record(self.today())

    async def extract(self, image_data: Any, skip_recognition: bool = False) -> ExtractedRecord:
        if skip_recognition:
            LOGGER.info("recognition_skipped")
            return self.fallback_record()
        if image_data is None or (isinstance(image_data, (bytes, bytearray, str)) and not image_data):
            raise ValueError("image_data is required unless skip_recognition is set")

        started = time.monotonic()
        try:
            raw_text = await asyncio.wait_for(
                self._recognizer.recognize(image_data, timeout=self._timeout),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            LOGGER.warning("recognition_timed_out_falling_back: timeout=%.1fs", self._timeout)
            return self.fallback_record()
        except Exception as exc:
            LOGGER.warning(
                "recognition_failed_falling_back: %s",
                exc,
                exc_info=LOGGER.isEnabledFor(logging.DEBUG),
            )
            return self.fallback_record()

        if not isinstance(raw_text, str):
            LOGGER.warning("recognition_returned_non_text_falling_back: type=%s", type(raw_text).__name__)
            return self.fallback_record()

        record = parse_receipt_text(raw_text, today=self.today())
        LOGGER.info(
            "receipt_extracted: elapsed=%.2fs amount_found=%s",
            time.monotonic() - started,
            record.amount is not None,
        )
        return record


__all__ = ["DEFAULT_TIMEOUT", "ReceiptProcessor", "Recognizer", "parse_receipt_text"]
