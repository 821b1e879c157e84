"""FastAPI router definitions for the receipt extraction service."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from .ocr_extract import OCRRecognizer
from .processor import ReceiptProcessor
from .record import ExtractedRecord
from .settings import get_settings

LOGGER = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Receipt Field Extraction Service")

MAX_UPLOAD_SIZE = 15 * 1024 * 1024
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/tiff",
    "image/webp",
}


class ExtractResponse(BaseModel):
    amount: Optional[float] = None
    merchant: str
    date: str
    needs_review: bool

    @classmethod
    def from_record(cls, record: ExtractedRecord) -> "ExtractResponse":
        return cls(**record.to_dict(), needs_review=record.needs_review)


@lru_cache()
def get_processor() -> ReceiptProcessor:
    settings = get_settings()
    recognizer = OCRRecognizer(engine=settings.ocr_engine, language=settings.ocr_language)
    return ReceiptProcessor(recognizer, timeout=settings.ocr_timeout, timezone=settings.timezone)


async def _read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="empty_file")
    if len(data) > MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="file_too_large")
    if file.content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="unsupported_mime")
    return data


@app.post("/extract", response_model=ExtractResponse)
async def extract(
    file: Optional[UploadFile] = File(None),
    image_url: Optional[str] = Form(None),
    skip_ocr: bool = Form(False),
    processor: ReceiptProcessor = Depends(get_processor),
) -> ExtractResponse:
    image_data = None
    if not skip_ocr:
        if file is not None:
            image_data = await _read_upload(file)
        elif image_url and image_url.strip():
            image_data = image_url.strip()
        else:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_image")

    record = await processor.extract(image_data, skip_recognition=skip_ocr)
    if record.needs_review:
        LOGGER.info("extraction_needs_review: merchant=%s amount=%s", record.merchant, record.amount)
    return ExtractResponse.from_record(record)


__all__ = ["app"]
