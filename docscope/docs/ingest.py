"""Document ingestion - extract, chunk, embed and index uploaded files.

Files in a batch are processed concurrently and independently: a failure in one
file is recorded as that file's outcome and never affects its siblings. Each
task owns its own results; outcomes are merged only after every task settles.
"""

import asyncio
import logging
import re
import time
import uuid

from docscope.config import Settings
from docscope.docs.chunker import ChunkStrategy, chunk_text
from docscope.docs.extractor import Extractor
from docscope.errors import DocscopeError, ExtractionError, IngestionFailedError, VectorIndexError
from docscope.models.common import GLOBAL_PARTITION, Partition
from docscope.models.docs import DocumentRecord, UploadedFile, VectorRecord
from docscope.models.results import FileOutcome, IngestionResult
from docscope.providers.embeddings import EmbeddingService
from docscope.providers.policy import CallPolicy
from docscope.providers.vector_index import DOCUMENT_ID_KEY, VectorIndexService
from docscope.utils.logging import log_file_outcome
from docscope.utils.metrics import ingested_files_total

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9.\-_]")


def sanitize_file_name(name: str) -> str:
    """Replace every character outside [a-zA-Z0-9._-] with an underscore."""
    return _UNSAFE_NAME_RE.sub("_", name)


def new_document_id(original_name: str, partition: Partition) -> str:
    """Globally unique, human-traceable document id.

    Format: [global_]<epoch ms>_<8 hex>_<sanitized file name>
    """
    prefix = "global_" if partition == GLOBAL_PARTITION else ""
    stamp = int(time.time() * 1000)
    return f"{prefix}{stamp}_{uuid.uuid4().hex[:8]}_{sanitize_file_name(original_name)}"


def chunk_id(document_id: str, index: int) -> str:
    return f"{document_id}_chunk_{index}"


def embedding_input(chunk: str, original_name: str, with_source: bool) -> str:
    """Text sent to the embedder; optionally names the source file."""
    if not with_source:
        return chunk
    return f'This text is from the file "{original_name}". Content: {chunk}'


class IngestionPipeline:
    """Extractor -> Chunker -> EmbeddingService -> VectorIndexService.upsert."""

    def __init__(
        self,
        extractor: Extractor,
        embedder: EmbeddingService,
        index: VectorIndexService,
        *,
        chunk_size: int = 1500,
        chunk_overlap: int = 150,
        chunk_strategy: ChunkStrategy = "sentence",
        source_prefix: bool = True,
        embedding_concurrency: int = 8,
        index_policy: CallPolicy | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            extractor: File -> text
            embedder: Text -> vector
            index: Vector store
            chunk_size: Target fragment size in characters
            chunk_overlap: Characters shared by consecutive fragments
            chunk_strategy: "sentence" or "fixed"
            source_prefix: Prefix embedded text with the source file name
            embedding_concurrency: Max in-flight embedding calls per batch
            index_policy: Call policy for vector index writes
        """
        self._extractor = extractor
        self._embedder = embedder
        self._index = index
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._chunk_strategy = chunk_strategy
        self._source_prefix = source_prefix
        self._embedding_concurrency = embedding_concurrency
        self._index_policy = index_policy or CallPolicy()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        extractor: Extractor,
        embedder: EmbeddingService,
        index: VectorIndexService,
        index_policy: CallPolicy | None = None,
    ) -> "IngestionPipeline":
        return cls(
            extractor,
            embedder,
            index,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            chunk_strategy=settings.chunk_strategy,
            source_prefix=settings.chunk_source_prefix,
            embedding_concurrency=settings.embedding_concurrency,
            index_policy=index_policy,
        )

    async def ingest(
        self,
        files: list[UploadedFile],
        partition: Partition,
        *,
        uploaded_by: str | None = None,
    ) -> IngestionResult:
        """Ingest a batch of files into one category (or the global partition).

        Returns:
            Per-file outcomes (input order) and one DocumentRecord per success

        Raises:
            IngestionFailedError: No file in the batch succeeded
        """
        semaphore = asyncio.Semaphore(self._embedding_concurrency)
        settled = await asyncio.gather(
            *(self._ingest_one(file, partition, uploaded_by, semaphore) for file in files)
        )

        outcomes = [outcome for outcome, _ in settled]
        documents = [document for _, document in settled if document is not None]
        result = IngestionResult(outcomes=outcomes, documents=documents)

        if not documents:
            raise IngestionFailedError(outcomes)

        logger.info(
            result.summary(),
            extra={
                "structured": {
                    "partition": str(getattr(partition, "value", partition)),
                    "succeeded": len(result.succeeded),
                    "failed": len(result.failed),
                }
            },
        )
        return result

    async def _ingest_one(
        self,
        file: UploadedFile,
        partition: Partition,
        uploaded_by: str | None,
        semaphore: asyncio.Semaphore,
    ) -> tuple[FileOutcome, DocumentRecord | None]:
        try:
            document = await self._process(file, partition, uploaded_by, semaphore)
        except DocscopeError as e:
            outcome = FileOutcome(
                file_name=file.original_name,
                status="error",
                reason=str(e),
                error_type=type(e).__name__,
            )
            document = None
        except Exception as e:
            # Provider client bugs or unexpected payloads: still isolated to this file
            logger.exception(f"Unexpected error ingesting {file.original_name}")
            outcome = FileOutcome(
                file_name=file.original_name,
                status="error",
                reason=f"Unexpected error: {e}",
                error_type=type(e).__name__,
            )
            document = None
        else:
            outcome = FileOutcome(
                file_name=file.original_name,
                status="success",
                document_id=document.document_id,
                chunk_count=document.chunk_count,
            )

        ingested_files_total.labels(outcome=outcome.status).inc()
        log_file_outcome(outcome)
        return outcome, document

    async def _process(
        self,
        file: UploadedFile,
        partition: Partition,
        uploaded_by: str | None,
        semaphore: asyncio.Semaphore,
    ) -> DocumentRecord:
        text = await self._extractor.extract(file)

        chunks = chunk_text(
            text,
            size=self._chunk_size,
            overlap=self._chunk_overlap,
            strategy=self._chunk_strategy,
        )
        if not chunks:
            raise ExtractionError(f"{file.original_name} produced no text fragments")

        document_id = new_document_id(file.original_name, partition)

        async def embed(chunk: str) -> list[float]:
            async with semaphore:
                return await self._embedder.embed(
                    embedding_input(chunk, file.original_name, self._source_prefix)
                )

        vectors = await asyncio.gather(*(embed(chunk) for chunk in chunks))

        records = [
            VectorRecord(
                id=chunk_id(document_id, index),
                vector=vector,
                metadata={
                    DOCUMENT_ID_KEY: document_id,
                    "text": chunk,
                    "originalName": file.original_name,
                    "sequenceIndex": index,
                },
            )
            for index, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]

        await self._index_policy.execute(
            "vector_index", lambda: self._index.upsert(records), error_cls=VectorIndexError
        )

        return DocumentRecord(
            document_id=document_id,
            original_name=file.original_name,
            chunk_count=len(records),
            category=partition,
            uploaded_by=uploaded_by,
        )
