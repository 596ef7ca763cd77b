"""Local (in-process) text parsers for PDF, Word, spreadsheet and plain text files.

These are blocking; the extractor runs them in a worker thread.
"""

from io import BytesIO
from pathlib import Path

from docx import Document
from openpyxl import load_workbook
from pypdf import PdfReader


def read_pdf_text(data: bytes) -> str:
    """Extract the text layer of a PDF, pages joined by blank lines.

    Scanned PDFs without a text layer yield an empty string.
    """
    reader = PdfReader(BytesIO(data))
    pages = []

    for page in reader.pages:
        text = page.extract_text()
        if text and text.strip():
            pages.append(text.strip())

    return "\n\n".join(pages)


def read_docx_text(path: Path) -> str:
    """Extract paragraphs and table rows of a Word document."""
    doc = Document(str(path))
    paragraphs = [para.text.strip() for para in doc.paragraphs if para.text.strip()]

    # Tables are not part of doc.paragraphs
    for table in doc.tables:
        table_rows = []
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            table_rows.append(" | ".join(cells))
        if table_rows:
            paragraphs.append("\n".join(table_rows))

    return "\n\n".join(paragraphs)


def sheet_header(sheet_name: str) -> str:
    return f'--- Sheet content: "{sheet_name}" ---'


def read_xlsx_text(path: Path) -> str:
    """Extract every non-empty sheet as pipe-separated rows under a per-sheet header."""
    wb = load_workbook(path, data_only=True, read_only=True)
    sheets = []

    try:
        for sheet_name in wb.sheetnames:
            rows = []
            for row in wb[sheet_name].iter_rows(values_only=True):
                cells = ["" if value is None else str(value) for value in row]
                # Only include rows that have some content
                if any(c.strip() for c in cells):
                    rows.append(" | ".join(cells))

            if rows:
                sheets.append(f"{sheet_header(sheet_name)}\n" + "\n".join(rows))
    finally:
        wb.close()

    return "\n\n".join(sheets)


def read_plain_text(path: Path) -> str:
    """Read a text file as UTF-8, replacing undecodable bytes."""
    return path.read_text(encoding="utf-8", errors="replace")
