"""Extractor - turns one uploaded file into plain text.

Dispatch is by the format family derived from the file extension; the declared
MIME type is only a secondary hint for files whose extension is unknown.

PDF pipeline (strict order, never configurable):
    1. local text-layer parser
    2. OCR, only if (1) raised or produced blank text
Legacy office formats go through the conversion service and then the PDF pipeline.
Images go straight to OCR.

The extractor reads the staged file but never deletes it.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from docscope.docs.parsers import read_docx_text, read_pdf_text, read_plain_text, read_xlsx_text
from docscope.errors import ExtractionError, OCRError, UnsupportedFormatError
from docscope.models.docs import UploadedFile
from docscope.providers.conversion import ConversionService
from docscope.providers.ocr import OCRService
from docscope.utils.metrics import extraction_fallbacks_total

logger = logging.getLogger(__name__)


class FormatFamily(str, Enum):
    """Extraction strategy selected for a file."""

    word = "word"
    spreadsheet = "spreadsheet"
    pdf = "pdf"
    convertible = "convertible"
    image = "image"
    text = "text"


EXTENSION_FAMILIES: dict[str, FormatFamily] = {
    ".docx": FormatFamily.word,
    ".xlsx": FormatFamily.spreadsheet,
    ".pdf": FormatFamily.pdf,
    # Legacy binary / diagram formats: converted to PDF remotely
    ".doc": FormatFamily.convertible,
    ".xls": FormatFamily.convertible,
    ".ppt": FormatFamily.convertible,
    ".pptx": FormatFamily.convertible,
    ".vsd": FormatFamily.convertible,
    ".vsdx": FormatFamily.convertible,
    ".jpg": FormatFamily.image,
    ".jpeg": FormatFamily.image,
    ".png": FormatFamily.image,
    ".webp": FormatFamily.image,
    ".txt": FormatFamily.text,
    ".md": FormatFamily.text,
    ".csv": FormatFamily.text,
}

IMAGE_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

PDF_MIME_TYPE = "application/pdf"


def classify(file: UploadedFile) -> FormatFamily:
    """Pick the format family for a file.

    Raises:
        UnsupportedFormatError: Neither the extension nor the declared type is known
    """
    family = EXTENSION_FAMILIES.get(file.extension)
    if family is not None:
        return family

    declared = file.declared_mime_type.lower()
    if declared.startswith("image/"):
        return FormatFamily.image
    if declared == "text/plain":
        return FormatFamily.text

    raise UnsupportedFormatError(file.extension, file.declared_mime_type)


class Extractor:
    """Format-dispatching text extractor with ordered fallback."""

    def __init__(
        self,
        ocr: OCRService,
        conversion: ConversionService,
        pdf_parser: Callable[[bytes], str] = read_pdf_text,
    ) -> None:
        """Initialize extractor.

        Args:
            ocr: OCR service (images, PDF fallback)
            conversion: Conversion service for legacy office formats
            pdf_parser: Local PDF text-layer parser
        """
        self._ocr = ocr
        self._conversion = conversion
        self._pdf_parser = pdf_parser

    async def extract(self, file: UploadedFile) -> str:
        """Extract the text of one file.

        Returns:
            Non-blank extracted text

        Raises:
            UnsupportedFormatError: No strategy for this file
            ExtractionError: Every strategy in the file's chain failed or yielded blank text
        """
        family = classify(file)
        logger.info(f"Extracting {file.original_name} as {family.value}")

        if family is FormatFamily.word:
            text = await self._run_parser(read_docx_text, file.path, file.original_name)
        elif family is FormatFamily.spreadsheet:
            text = await self._run_parser(read_xlsx_text, file.path, file.original_name)
        elif family is FormatFamily.pdf:
            data = await asyncio.to_thread(file.path.read_bytes)
            text = await self._extract_pdf(data, file.original_name, family)
        elif family is FormatFamily.convertible:
            data = await asyncio.to_thread(file.path.read_bytes)
            pdf_bytes = await self._conversion.convert(data, file.original_name)
            text = await self._extract_pdf(pdf_bytes, file.original_name, family)
        elif family is FormatFamily.image:
            data = await asyncio.to_thread(file.path.read_bytes)
            text = await self._ocr_or_fail(data, _image_mime_type(file), file.original_name)
        else:
            text = await self._run_parser(read_plain_text, file.path, file.original_name)

        if not text or not text.strip():
            raise ExtractionError(f"No text could be extracted from {file.original_name}")
        return text

    async def _run_parser(self, parser: Callable[[Path], str], path: Path, name: str) -> str:
        try:
            return await asyncio.to_thread(parser, path)
        except Exception as e:
            raise ExtractionError(f"Could not parse {name}: {e}") from e

    async def _extract_pdf(self, data: bytes, name: str, family: FormatFamily) -> str:
        """Local parser first; OCR exactly once when it raises or yields blank text."""
        try:
            text = await asyncio.to_thread(self._pdf_parser, data)
        except Exception as e:
            logger.warning(f"PDF parser failed for {name}: {e}")
            text = ""

        if text and text.strip():
            return text

        logger.warning(f"No text layer in {name}, falling back to OCR")
        extraction_fallbacks_total.labels(family=family.value).inc()
        return await self._ocr_or_fail(data, PDF_MIME_TYPE, name)

    async def _ocr_or_fail(self, data: bytes, mime_type: str, name: str) -> str:
        try:
            return await self._ocr.extract_text(data, mime_type)
        except OCRError as e:
            raise ExtractionError(f"OCR failed for {name}: {e}") from e


def _image_mime_type(file: UploadedFile) -> str:
    declared = file.declared_mime_type.lower()
    if declared.startswith("image/"):
        return declared
    return IMAGE_MIME_TYPES.get(file.extension, "image/png")
