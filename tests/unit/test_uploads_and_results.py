"""Tests for staged upload ownership and outcome models."""

import pytest

from docscope.errors import IngestionFailedError
from docscope.models.results import FileOutcome, IngestionResult
from docscope.uploads import discard_staged, staged_uploads


@pytest.mark.asyncio
async def test_staged_files_deleted_on_exception(make_file) -> None:
    """Test that staged files are removed even when the block raises."""
    files = [make_file("a.txt", "A"), make_file("b.txt", "B")]

    with pytest.raises(RuntimeError):
        async with staged_uploads(files) as staged:
            assert all(f.path.exists() for f in staged)
            raise RuntimeError("boom")

    assert not any(f.path.exists() for f in files)


def test_discard_ignores_missing_files(make_file) -> None:
    """Test that discarding an already-deleted file is not an error."""
    file = make_file("gone.txt", "x")
    file.path.unlink()

    discard_staged([file])


def test_ingestion_summary() -> None:
    """Test the human-readable batch summaries."""
    ok = FileOutcome(file_name="a.pdf", status="success", document_id="d1", chunk_count=2)
    bad = FileOutcome(file_name="b.pdf", status="error", reason="No text")

    assert IngestionResult(outcomes=[ok]).summary() == "1 of 1 files processed successfully."
    partial = IngestionResult(outcomes=[ok, bad])
    assert partial.is_partial
    assert partial.summary() == "1 of 2 files processed, 1 with errors (b.pdf: No text)."


def test_ingestion_failed_error_lists_reasons() -> None:
    """Test that a fully failed batch names every file's reason."""
    error = IngestionFailedError([FileOutcome(file_name="x.txt", status="error", reason="empty")])

    assert str(error) == "No file could be processed (x.txt: empty)"
