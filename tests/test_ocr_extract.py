from __future__ import annotations

import base64
from typing import Any, Optional

import pytest

from receipt_engine import ocr_extract


@pytest.fixture
def sample_text() -> str:
    return "\n".join(
        [
            "Harbor Books",
            "2025-10-10",
            "Novel       $14.99",
            "Total       $16.19",
        ]
    )


def test_recognize_text_runs_ocr_for_images(monkeypatch: pytest.MonkeyPatch, sample_text: str) -> None:
    captured: dict[str, Any] = {}

    def fake_ocr(binary: bytes, *, engine: str, language: str, timeout: Optional[float]) -> str:
        captured.update(binary=binary, engine=engine, language=language, timeout=timeout)
        return sample_text

    monkeypatch.setattr(ocr_extract, "perform_ocr", fake_ocr)

    text = ocr_extract.recognize_text(b"\x89PNG fake", engine="local", language="eng", timeout=12)

    assert text == sample_text
    assert captured == {"binary": b"\x89PNG fake", "engine": "local", "language": "eng", "timeout": 12}


def test_recognize_text_uses_pdf_pipeline(monkeypatch: pytest.MonkeyPatch, sample_text: str) -> None:
    calls: dict[str, int] = {"pdf": 0}

    def fake_pdf(_: bytes) -> str:
        calls["pdf"] += 1
        return sample_text

    def fail_ocr(*_: Any, **__: Any) -> str:  # pragma: no cover - must not run
        raise AssertionError("OCR should not run for PDFs")

    monkeypatch.setattr(ocr_extract, "_extract_text_from_pdf", fake_pdf)
    monkeypatch.setattr(ocr_extract, "perform_ocr", fail_ocr)

    text = ocr_extract.recognize_text(b"%PDF-1.4 stub")

    assert calls["pdf"] == 1
    assert text == sample_text


def test_load_bytes_accepts_data_urls() -> None:
    payload = base64.b64encode(b"\x89PNG image").decode()

    binary, source = ocr_extract.load_bytes(f"data:image/png;base64,{payload}")

    assert binary == b"\x89PNG image"
    assert source == "data_url"


def test_load_bytes_accepts_bare_base64() -> None:
    binary, source = ocr_extract.load_bytes(base64.b64encode(b"raw").decode())

    assert binary == b"raw"
    assert source == "base64"


@pytest.mark.parametrize(
    "value,reason",
    [
        ("not base64 !!", "invalid_base64"),
        ("data:image/png,plain", "unsupported_data_url"),
        (b"", "empty_input"),
        (12345, "unsupported_input_type"),
    ],
)
def test_load_bytes_rejects_malformed_input(value: Any, reason: str) -> None:
    with pytest.raises(ocr_extract.OCRDecodeError) as excinfo:
        ocr_extract.load_bytes(value)

    assert str(excinfo.value) == reason


def test_load_bytes_fetches_urls(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    class FakeResponse:
        content = b"\x89PNG remote"

        def raise_for_status(self) -> None:
            captured["checked"] = True

    def fake_get(url: str, timeout: float) -> FakeResponse:
        captured.update(url=url, timeout=timeout)
        return FakeResponse()

    monkeypatch.setattr(ocr_extract.requests, "get", fake_get)

    binary, source = ocr_extract.load_bytes(" https://example.com/receipt.jpg ", timeout=5)

    assert binary == b"\x89PNG remote"
    assert source == "https://example.com/receipt.jpg"
    assert captured == {"url": "https://example.com/receipt.jpg", "timeout": 5, "checked": True}


def test_perform_ocr_uses_local_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    class FakeImage:
        mode = "L"

        def load(self) -> None:
            captured["loaded"] = True

        def convert(self, mode: str) -> "FakeImage":
            captured["converted_to"] = mode
            self.mode = mode
            return self

    class FakeImageModule:
        @staticmethod
        def open(_: Any) -> FakeImage:
            captured["opened"] = True
            return FakeImage()

    class FakeTesseractError(Exception):
        pass

    class FakePytesseract:
        TesseractError = FakeTesseractError
        TesseractNotFoundError = FakeTesseractError

        @staticmethod
        def image_to_string(image: FakeImage, lang: str, timeout: float) -> str:
            captured["lang"] = lang
            captured["timeout"] = timeout
            captured["image_mode"] = image.mode
            return "Harbor Books"

    monkeypatch.setattr(ocr_extract, "Image", FakeImageModule)
    monkeypatch.setattr(ocr_extract, "pytesseract", FakePytesseract)

    text = ocr_extract.perform_ocr(b"fake-bytes", engine="local", language="eng", timeout=30)

    assert text == "Harbor Books"
    assert captured["opened"] is True
    assert captured["loaded"] is True
    assert captured["converted_to"] == "RGB"
    assert captured["image_mode"] == "RGB"
    assert captured["lang"] == "eng"
    assert captured["timeout"] == 30


def test_perform_ocr_falls_back_when_rapidocr_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(_: bytes) -> str:
        raise ocr_extract.OCRServiceError("boom")

    monkeypatch.setattr(ocr_extract, "_ocr_rapidocr", boom)

    calls: dict[str, int] = {"local": 0}

    def fake_local(_: bytes, *, language: str, timeout: Optional[float]) -> str:
        calls["local"] += 1
        return "fallback"

    monkeypatch.setattr(ocr_extract, "_ocr_local", fake_local)

    text = ocr_extract.perform_ocr(b"fake", engine="rapidocr")

    assert text == "fallback"
    assert calls["local"] == 1


def test_perform_ocr_rejects_unknown_engine() -> None:
    with pytest.raises(ocr_extract.OCRServiceError) as excinfo:
        ocr_extract.perform_ocr(b"fake", engine="cloud")

    assert "unknown_ocr_engine" in str(excinfo.value)


def _patch_failing_tesseract(monkeypatch: pytest.MonkeyPatch, error: Exception) -> None:
    class FakeImage:
        def load(self) -> None:  # pragma: no cover - simple stub
            pass

        def convert(self, mode: str) -> "FakeImage":  # pragma: no cover
            return self

    class FakeImageModule:
        @staticmethod
        def open(_: Any) -> FakeImage:  # pragma: no cover - simple stub
            return FakeImage()

    class FakePytesseract:
        TesseractError = FakeTesseractError
        TesseractNotFoundError = FakeTesseractNotFoundError

        @staticmethod
        def image_to_string(_: Any, lang: str, timeout: float) -> str:  # noqa: ARG004
            raise error

    monkeypatch.setattr(ocr_extract, "Image", FakeImageModule)
    monkeypatch.setattr(ocr_extract, "pytesseract", FakePytesseract)


class FakeTesseractError(RuntimeError):
    pass


class FakeTesseractNotFoundError(EnvironmentError):
    pass


@pytest.mark.parametrize(
    "error,reason",
    [
        (FakeTesseractError("ocr failed"), "tesseract_error"),
        (FakeTesseractNotFoundError("missing"), "tesseract_not_found"),
        (RuntimeError("Tesseract process timeout"), "tesseract_timeout"),
    ],
)
def test_ocr_local_reports_tesseract_errors(
    monkeypatch: pytest.MonkeyPatch, error: Exception, reason: str
) -> None:
    _patch_failing_tesseract(monkeypatch, error)

    with pytest.raises(ocr_extract.OCRServiceError) as excinfo:
        ocr_extract._ocr_local(b"fake")

    assert reason in str(excinfo.value)


def test_ocr_local_rejects_invalid_images(monkeypatch: pytest.MonkeyPatch) -> None:
    class FakeImageModule:
        @staticmethod
        def open(_: Any) -> None:
            raise ocr_extract.UnidentifiedImageError("bad image")

    monkeypatch.setattr(ocr_extract, "Image", FakeImageModule)

    with pytest.raises(ocr_extract.OCRDecodeError):
        ocr_extract._ocr_local(b"bad")


@pytest.mark.asyncio
async def test_recognizer_runs_in_worker_thread(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def fake_recognize_text(image_input: Any, *, engine: str, language: str, timeout: Optional[float]) -> str:
        captured.update(image=image_input, engine=engine, language=language, timeout=timeout)
        return "Harbor Books"

    monkeypatch.setattr(ocr_extract, "recognize_text", fake_recognize_text)
    recognizer = ocr_extract.OCRRecognizer(engine="local", language="eng+fra")

    text = await recognizer.recognize(b"image", timeout=7.5)

    assert text == "Harbor Books"
    assert captured == {"image": b"image", "engine": "local", "language": "eng+fra", "timeout": 7.5}
