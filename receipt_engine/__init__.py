"""Best-effort receipt field extraction."""
from .processor import ReceiptProcessor, parse_receipt_text
from .record import RECEIPT_UPLOADED, UNKNOWN_MERCHANT, ExtractedRecord

__all__ = [
    "ExtractedRecord",
    "RECEIPT_UPLOADED",
    "ReceiptProcessor",
    "UNKNOWN_MERCHANT",
    "parse_receipt_text",
]
