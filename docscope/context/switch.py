"""Context switch detection by similarity to precomputed trigger phrases."""

import logging
import math
from collections.abc import Sequence

from docscope.models.common import Category
from docscope.models.triggers import EmbeddedTrigger, Trigger, TriggerTable
from docscope.providers.embeddings import EmbeddingService

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero norm.

    Raises:
        ValueError: Vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


async def build_trigger_table(
    triggers: Sequence[Trigger], embedder: EmbeddingService
) -> TriggerTable:
    """Embed every trigger phrase once. Awaited at startup, read-only afterwards."""
    entries = []
    for trigger in triggers:
        embedding = await embedder.embed(trigger.phrase)
        entries.append(EmbeddedTrigger(trigger=trigger, embedding=tuple(embedding)))

    logger.info(f"Trigger table ready with {len(entries)} entries")
    return TriggerTable(entries=tuple(entries))


def detect(
    utterance_embedding: Sequence[float],
    table: TriggerTable,
    current_category: Category,
    threshold: float,
) -> Category | None:
    """Category to switch to, or None.

    Only triggers of other categories are considered. A trigger matches when its
    similarity is strictly greater than `threshold`; the best match wins and ties
    go to the earlier trigger in the table.
    """
    best: EmbeddedTrigger | None = None
    best_score = threshold

    for entry in table.entries:
        if entry.trigger.category == current_category:
            continue
        score = cosine_similarity(utterance_embedding, entry.embedding)
        if score > best_score:
            best, best_score = entry, score

    if best is None:
        return None

    logger.info(
        f"Context switch detected: {current_category.value} -> {best.trigger.category.value}",
        extra={"structured": {"similarity": round(best_score, 4), "threshold": threshold}},
    )
    return best.trigger.category
