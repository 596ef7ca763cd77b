"""Scoped ownership of staged upload files."""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from docscope.models.docs import UploadedFile

logger = logging.getLogger(__name__)


def discard_staged(files: Iterable[UploadedFile]) -> None:
    """Delete staged files; already-missing files are ignored."""
    for file in files:
        try:
            file.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete staged file {file.path}: {e}")


@asynccontextmanager
async def staged_uploads(files: Iterable[UploadedFile]) -> AsyncIterator[list[UploadedFile]]:
    """Own staged files for the duration of a request.

    The files are deleted on every exit path: success, partial failure or an
    exception raised inside the block.

    Usage:
        async with staged_uploads(files) as staged:
            result = await pipeline.ingest(staged, category)
    """
    staged = list(files)
    try:
        yield staged
    finally:
        discard_staged(staged)
