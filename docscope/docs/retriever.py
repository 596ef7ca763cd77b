"""Retrieval - scoped nearest-neighbour lookup of document fragments."""

import logging
from collections.abc import Collection

from docscope.errors import VectorIndexError
from docscope.models.docs import VectorFilter
from docscope.providers.embeddings import EmbeddingService
from docscope.providers.policy import CallPolicy
from docscope.providers.vector_index import VectorIndexService

logger = logging.getLogger(__name__)

FRAGMENT_DELIMITER = "\n\n---\n\n"

GROUNDING_INSTRUCTION = (
    "Answer the user's question using ONLY the context below. "
    "If the answer is not in the context, say that the documents do not contain it."
)


class RetrievalOrchestrator:
    """Embeds a query once and issues a single filtered index query.

    Results are returned exactly in the order the index ranks them.
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        index: VectorIndexService,
        index_policy: CallPolicy | None = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._index_policy = index_policy or CallPolicy()

    async def retrieve(
        self,
        query: str,
        searchable_ids: Collection[str],
        top_k: int,
        *,
        query_vector: list[float] | None = None,
    ) -> list[str]:
        """Top-k fragment texts among the searchable documents.

        Returns an empty list (without calling any provider) when nothing is in
        scope; an empty result is not an error. Pass `query_vector` when the
        query has already been embedded this turn.
        """
        if not searchable_ids or top_k <= 0:
            return []

        vector = query_vector if query_vector is not None else await self._embedder.embed(query)
        matches = await self._index_policy.execute(
            "vector_index",
            lambda: self._index.query(
                vector, top_k, VectorFilter(document_ids=sorted(searchable_ids))
            ),
            error_cls=VectorIndexError,
        )

        fragments = [str(m.metadata["text"]) for m in matches[:top_k] if m.metadata.get("text")]
        logger.info(
            f"Retrieved {len(fragments)} fragment(s) from {len(searchable_ids)} document(s)"
        )
        return fragments


def build_grounding_block(fragments: list[str]) -> str | None:
    """Join fragments with a delimiter under an answer-only-from-context instruction.

    Returns None when there is nothing to ground on.
    """
    if not fragments:
        return None
    return f"{GROUNDING_INSTRUCTION}\n\nCONTEXT:\n{FRAGMENT_DELIMITER.join(fragments)}"
