"""Shared pytest fixtures and fakes for all test suites."""

import itertools
from collections.abc import Callable
from pathlib import Path

import pytest

from docscope.config import Settings
from docscope.docs.extractor import Extractor
from docscope.errors import ConversionError, OCRError
from docscope.models.docs import UploadedFile
from docscope.providers.embeddings import HashingEmbeddingService
from docscope.providers.vector_index import InMemoryVectorIndex


class FakeOCR:
    """OCR fake that records calls and returns a fixed text (or raises)."""

    def __init__(self, text: str = "OCR text", error: str | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple[bytes, str]] = []

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        self.calls.append((data, mime_type))
        if self.error:
            raise OCRError(self.error)
        return self.text


class FakeConversion:
    """Conversion fake returning fixed PDF bytes (or raising)."""

    def __init__(self, pdf_bytes: bytes = b"%PDF-converted", error: str | None = None) -> None:
        self.pdf_bytes = pdf_bytes
        self.error = error
        self.calls: list[str] = []

    async def convert(self, file_bytes: bytes, original_name: str) -> bytes:
        self.calls.append(original_name)
        if self.error:
            raise ConversionError(self.error, status_code=502)
        return self.pdf_bytes


class FakeCompletion:
    """Completion fake: canned answer, JSON chosen per prompt by a callable."""

    def __init__(
        self,
        answer: str = "Generated answer",
        json_for: Callable[[str], str] | None = None,
    ) -> None:
        self.answer = answer
        self.json_for = json_for or (lambda prompt: '{"ok": true}')
        self.prompts: list[object] = []
        self.json_prompts: list[str] = []

    async def complete(self, prompt_or_history: object) -> str:
        self.prompts.append(prompt_or_history)
        return self.answer

    async def complete_json(self, prompt: str) -> str:
        self.json_prompts.append(prompt)
        return self.json_for(prompt)


@pytest.fixture
def settings() -> Settings:
    """Offline settings with small chunks."""
    return Settings(
        _env_file=None,
        openai_api_key=None,
        mistral_api_key=None,
        conversion_service_url=None,
        chunk_size=200,
        chunk_overlap=20,
        similarity_threshold=0.85,
        category_document_limit=3,
        provider_retry_count=0,
    )


@pytest.fixture
def embedder() -> HashingEmbeddingService:
    return HashingEmbeddingService()


@pytest.fixture
def index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def ocr() -> FakeOCR:
    return FakeOCR()


@pytest.fixture
def conversion() -> FakeConversion:
    return FakeConversion()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def extractor(ocr: FakeOCR, conversion: FakeConversion) -> Extractor:
    return Extractor(ocr=ocr, conversion=conversion)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., UploadedFile]:
    """Factory writing a staged upload to tmp_path."""
    counter = itertools.count()

    def _make(
        name: str, content: str | bytes = "", mime_type: str = "application/octet-stream"
    ) -> UploadedFile:
        path = tmp_path / f"staged-{next(counter)}-{name}"
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(content)
        return UploadedFile(path=path, original_name=name, declared_mime_type=mime_type)

    return _make
