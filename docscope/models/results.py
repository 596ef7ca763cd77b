"""Per-item outcome models for batch operations."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from docscope.models.docs import DocumentRecord

OutcomeStatus = Literal["success", "error"]


class FileOutcome(BaseModel):
    """Result of ingesting one file from a batch."""

    file_name: str
    status: OutcomeStatus
    document_id: str | None = None
    chunk_count: int = 0
    reason: str | None = None
    error_type: str | None = None


class IngestionResult(BaseModel):
    """Batch ingestion result: per-file outcomes plus catalog updates."""

    outcomes: list[FileOutcome] = Field(default_factory=list)
    documents: list[DocumentRecord] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == "success"]

    @property
    def failed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == "error"]

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    def summary(self) -> str:
        """Human-readable summary, e.g. "3 of 5 files processed"."""
        total = len(self.outcomes)
        ok = len(self.succeeded)
        if ok == total:
            return f"{ok} of {total} files processed successfully."
        reasons = "; ".join(f"{o.file_name}: {o.reason}" for o in self.failed)
        return f"{ok} of {total} files processed, {total - ok} with errors ({reasons})."


class SlotOutcome(BaseModel):
    """Structured-extraction result for one form slot."""

    slot: str
    status: OutcomeStatus
    data: dict[str, Any] | None = None
    error: str | None = None
    error_type: str | None = None
    raw_response: str | None = None


class FormFillResult(BaseModel):
    """Slot name -> outcome, for every slot that received files."""

    slots: dict[str, SlotOutcome] = Field(default_factory=dict)

    @property
    def data(self) -> dict[str, dict[str, Any]]:
        """Successful slot payloads only."""
        return {
            name: outcome.data
            for name, outcome in self.slots.items()
            if outcome.status == "success" and outcome.data is not None
        }

    @property
    def failed_slots(self) -> list[str]:
        return [name for name, outcome in self.slots.items() if outcome.status == "error"]


class ReportResult(BaseModel):
    """Final multi-document report and the slot data it was built from."""

    report_type: str
    report_text: str
    forms: FormFillResult
