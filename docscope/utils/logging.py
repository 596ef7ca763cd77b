"""Structured logging for provider calls and per-item batch outcomes."""

import logging
from typing import Any

from docscope.models.results import FileOutcome, SlotOutcome

logger = logging.getLogger(__name__)


class CallLogger:
    """Interface for structured call logging (no-op default)."""

    def log_attempt(
        self,
        provider: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log provider call attempt."""
        pass


class StructuredCallLogger(CallLogger):
    """Structured logger for provider call attempts."""

    def log_attempt(
        self,
        provider: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log provider call attempt with structured data."""
        log_data: dict[str, Any] = {
            "provider": provider,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Provider call: {provider} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})


def log_file_outcome(outcome: FileOutcome) -> None:
    """Log the outcome of ingesting one file."""
    log_data = outcome.model_dump(exclude_none=True)
    if outcome.status == "success":
        logger.info(
            f"Ingested {outcome.file_name} ({outcome.chunk_count} chunks)",
            extra={"structured": log_data},
        )
    else:
        logger.warning(
            f"Skipped {outcome.file_name}: {outcome.reason}", extra={"structured": log_data}
        )


def log_slot_outcome(outcome: SlotOutcome) -> None:
    """Log the outcome of one structured-extraction slot (raw response excluded)."""
    log_data = outcome.model_dump(exclude={"data", "raw_response"}, exclude_none=True)
    if outcome.status == "success":
        logger.info(f"Form slot {outcome.slot} extracted", extra={"structured": log_data})
    else:
        logger.warning(
            f"Form slot {outcome.slot} failed: {outcome.error}", extra={"structured": log_data}
        )
