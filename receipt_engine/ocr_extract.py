"""Receipt OCR helpers.

This module is the recogniser the processor talks to in production. It loads
the requested image/PDF (raw bytes, URL, ``data:`` URL or base64), runs it
through an OCR engine and returns the recognised text untouched apart from
joining engine fragments with newlines. Field extraction happens elsewhere.

The OCR engine defaults to RapidOCR with a local Tesseract fallback.
Additional engines can be introduced by extending ``perform_ocr``.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import importlib.util
import logging
import unicodedata
from io import BytesIO
from typing import List, Optional, Tuple, Union

import pytesseract
import requests
from pdfminer.high_level import extract_text
from PIL import Image, UnidentifiedImageError

_RAPIDOCR_AVAILABLE = importlib.util.find_spec("rapidocr_onnxruntime") is not None
if _RAPIDOCR_AVAILABLE:
    import numpy as np
    from rapidocr_onnxruntime import RapidOCR  # type: ignore
else:  # pragma: no cover - rapidocr extra not installed
    np = None  # type: ignore[assignment]
    RapidOCR = None  # type: ignore[assignment]

LOGGER = logging.getLogger(__name__)

ImageInput = Union[str, bytes, bytearray]

FETCH_TIMEOUT = 30

_RAPIDOCR_ENGINE: Optional[RapidOCR] = None  # type: ignore[valid-type]


class ImageFetchError(RuntimeError):
    """Raised when the input image/PDF cannot be retrieved."""


class OCRServiceError(RuntimeError):
    """Raised when the upstream OCR engine fails."""


class OCRDecodeError(RuntimeError):
    """Raised when the input or the OCR output cannot be interpreted."""


class OCRRecognizer:
    """Recogniser handle backed by the local OCR engines.

    The blocking OCR call runs in a worker thread. Tesseract receives the
    timeout and kills its subprocess when it expires; a RapidOCR inference
    already in progress cannot be interrupted.
    """

    def __init__(self, engine: str = "rapidocr", language: str = "eng") -> None:
        self.engine = engine
        self.language = language

    async def recognize(self, image_data: ImageInput, *, timeout: Optional[float] = None) -> str:
        return await asyncio.to_thread(
            recognize_text,
            image_data,
            engine=self.engine,
            language=self.language,
            timeout=timeout,
        )


def recognize_text(
    image_input: ImageInput,
    *,
    engine: str = "rapidocr",
    language: str = "eng",
    timeout: Optional[float] = None,
) -> str:
    """Return the raw text recognised in ``image_input``.

    Parameters
    ----------
    image_input:
        Raw image/PDF bytes, a URL pointing to the receipt file, a ``data:``
        URL or a bare base64 payload.
    timeout:
        Upper bound in seconds for the fetch and the Tesseract run.
    """

    binary, source = load_bytes(image_input, timeout=timeout)
    LOGGER.debug("recognize_text: source=%s size=%d engine=%s", source, len(binary), engine)
    if _is_pdf(binary):
        return _extract_text_from_pdf(binary)
    return perform_ocr(binary, engine=engine, language=language, timeout=timeout)


def load_bytes(image_input: ImageInput, *, timeout: Optional[float] = None) -> Tuple[bytes, str]:
    if isinstance(image_input, (bytes, bytearray)):
        if not image_input:
            raise OCRDecodeError("empty_input")
        return bytes(image_input), "bytes"

    if isinstance(image_input, str):
        trimmed = image_input.strip()
        if trimmed.startswith("http://") or trimmed.startswith("https://"):
            fetch_timeout = min(timeout, FETCH_TIMEOUT) if timeout else FETCH_TIMEOUT
            try:
                response = requests.get(trimmed, timeout=fetch_timeout)
                response.raise_for_status()
            except requests.RequestException as exc:  # pragma: no cover - network
                raise ImageFetchError("fetch_failed") from exc
            return response.content, trimmed

        source = "base64"
        if trimmed.startswith("data:"):
            header, _, trimmed = trimmed.partition(",")
            if not header.endswith(";base64"):
                raise OCRDecodeError("unsupported_data_url")
            source = "data_url"
        try:
            decoded = base64.b64decode(trimmed, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise OCRDecodeError("invalid_base64") from exc
        if not decoded:
            raise OCRDecodeError("empty_input")
        return decoded, source

    raise OCRDecodeError("unsupported_input_type")


def _is_pdf(binary: bytes) -> bool:
    return binary.startswith(b"%PDF")


def _extract_text_from_pdf(binary: bytes) -> str:
    try:
        return extract_text(BytesIO(binary))
    except Exception as exc:  # pragma: no cover - pdfminer internal failures
        raise OCRDecodeError("pdf_text_extraction_failed") from exc


def perform_ocr(
    binary: bytes,
    *,
    engine: str = "rapidocr",
    language: str = "eng",
    timeout: Optional[float] = None,
) -> str:
    engine = (engine or "rapidocr").strip().lower()
    if engine == "rapidocr":
        try:
            return _ocr_rapidocr(binary)
        except (OCRServiceError, OCRDecodeError) as exc:
            LOGGER.warning(
                "rapidocr_failed_falling_back: %s",
                exc,
                exc_info=LOGGER.isEnabledFor(logging.DEBUG),
            )
            return _ocr_local(binary, language=language, timeout=timeout)
    if engine == "local":
        return _ocr_local(binary, language=language, timeout=timeout)
    raise OCRServiceError(f"unknown_ocr_engine:{engine}")


def _ocr_local(binary: bytes, *, language: str = "eng", timeout: Optional[float] = None) -> str:
    image = _image_from_bytes(binary)
    try:
        return pytesseract.image_to_string(image, lang=language, timeout=timeout or 0)
    except pytesseract.TesseractNotFoundError as exc:
        raise OCRServiceError("tesseract_not_found") from exc
    except pytesseract.TesseractError as exc:
        raise OCRServiceError(f"tesseract_error:{exc}") from exc
    except RuntimeError as exc:
        # pytesseract signals a killed subprocess with a bare RuntimeError.
        raise OCRServiceError("tesseract_timeout") from exc
    except Exception as exc:  # pragma: no cover - unexpected pytesseract failure
        raise OCRServiceError("tesseract_unknown_error") from exc


def _ocr_rapidocr(binary: bytes) -> str:
    if not _RAPIDOCR_AVAILABLE or RapidOCR is None:
        raise OCRServiceError("rapidocr_not_installed")
    image = _image_from_bytes(binary)
    np_image = np.array(image)
    engine = _get_rapidocr()
    try:
        result, _ = engine(np_image)
    except Exception as exc:  # pragma: no cover - rapidocr runtime failure
        raise OCRServiceError("rapidocr_execution_failed") from exc
    if not result:
        raise OCRDecodeError("rapidocr_empty_result")
    texts: List[str] = []
    for entry in result:
        if not entry:
            continue
        if isinstance(entry, (list, tuple)) and len(entry) >= 2:
            candidate = entry[1]
        else:
            candidate = entry
        if isinstance(candidate, (list, tuple)) and candidate:
            candidate = candidate[0]
        if not isinstance(candidate, str):
            continue
        normalised = unicodedata.normalize("NFKC", candidate).strip()
        if normalised:
            texts.append(normalised)
    if not texts:
        raise OCRDecodeError("rapidocr_no_text")
    return "\n".join(texts)


def _get_rapidocr() -> RapidOCR:  # type: ignore[valid-type]
    global _RAPIDOCR_ENGINE
    if _RAPIDOCR_ENGINE is None:
        _RAPIDOCR_ENGINE = RapidOCR(det_use_cuda=False, rec_use_cuda=False, cls_use_cuda=False)
    return _RAPIDOCR_ENGINE


def _image_from_bytes(binary: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(binary))
        image.load()
    except UnidentifiedImageError as exc:
        raise OCRDecodeError("unsupported_image_format") from exc
    except Exception as exc:  # pragma: no cover - pillow internal failures
        raise OCRServiceError("image_open_failed") from exc
    return image.convert("RGB")


__all__ = [
    "ImageFetchError",
    "ImageInput",
    "OCRDecodeError",
    "OCRRecognizer",
    "OCRServiceError",
    "load_bytes",
    "perform_ocr",
    "recognize_text",
]
