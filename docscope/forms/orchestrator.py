"""Form extraction - structured JSON per form slot from a batch of files.

All slots run concurrently and are joined after every slot settles. A failing
slot becomes an error outcome carrying its reason (and the raw model response
for parse failures); it never delays or fails its siblings.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from docscope.docs.extractor import Extractor
from docscope.errors import FormConfigurationError, SchemaParseError
from docscope.models.docs import UploadedFile
from docscope.models.results import FormFillResult, SlotOutcome
from docscope.providers.completion import CompletionService
from docscope.utils.logging import log_slot_outcome
from docscope.utils.metrics import form_slots_total

logger = logging.getLogger(__name__)

SCHEMA_PLACEHOLDER = "__JSON_SCHEMA__"
TEXT_PLACEHOLDER = "__TEXT_TO_PROCESS__"

DEFAULT_SLOT_PROMPT = f"""You extract structured data from administrative documents.
Read the documents below and return ONE JSON object that follows this JSON schema:

{SCHEMA_PLACEHOLDER}

Use null for fields the documents do not mention. Do not invent values.
Each document is delimited by START/END markers naming its file.

{TEXT_PLACEHOLDER}"""

DEFAULT_SLOT_SCHEMA = '{"type": "object"}'


@dataclass(frozen=True)
class SlotTemplate:
    """Prompt template and JSON schema for one form slot."""

    json_schema: str = DEFAULT_SLOT_SCHEMA
    prompt_template: str = DEFAULT_SLOT_PROMPT

    def render(self, text: str) -> str:
        return self.prompt_template.replace(SCHEMA_PLACEHOLDER, self.json_schema).replace(
            TEXT_PLACEHOLDER, text
        )


def load_slot_templates(directory: str | Path, slots: list[str]) -> dict[str, SlotTemplate]:
    """Read <slot>.schema.json (required) and <slot>.prompt.txt (optional) per slot.

    Raises:
        FormConfigurationError: A slot has no schema file
    """
    base = Path(directory)
    templates = {}
    for slot in slots:
        schema_path = base / f"{slot}.schema.json"
        if not schema_path.is_file():
            raise FormConfigurationError(f"Missing schema for form slot '{slot}': {schema_path}")

        prompt_path = base / f"{slot}.prompt.txt"
        templates[slot] = SlotTemplate(
            json_schema=schema_path.read_text(encoding="utf-8"),
            prompt_template=(
                prompt_path.read_text(encoding="utf-8")
                if prompt_path.is_file()
                else DEFAULT_SLOT_PROMPT
            ),
        )
    return templates


def mark_document(name: str, text: str) -> str:
    """Wrap one file's text in start/end markers naming the file."""
    return f"--- START OF DOCUMENT: {name} ---\n\n{text}\n\n--- END OF DOCUMENT: {name} ---"


def parse_slot_response(slot: str, raw: str) -> dict:
    """Parse a structured-extraction response into a JSON object.

    Raises:
        SchemaParseError: Not valid JSON, or valid JSON that is not an object
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SchemaParseError(slot, raw, f"invalid JSON ({e.msg} at position {e.pos})") from e

    if not isinstance(data, dict):
        raise SchemaParseError(slot, raw, f"expected a JSON object, got {type(data).__name__}")
    return data


class FormExtractionOrchestrator:
    """Runs one structured-extraction request per slot, all slots concurrently."""

    def __init__(
        self,
        extractor: Extractor,
        completion: CompletionService,
        templates: Mapping[str, SlotTemplate] | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            extractor: File -> text
            completion: Structured (JSON-mode) completion provider
            templates: Per-slot templates; slots not listed use the default template
        """
        self._extractor = extractor
        self._completion = completion
        self._templates = dict(templates or {})

    def template_for(self, slot: str) -> SlotTemplate:
        return self._templates.get(slot, SlotTemplate())

    async def fill_forms(self, files_by_slot: Mapping[str, list[UploadedFile]]) -> FormFillResult:
        """Fill every slot that received at least one file.

        Returns:
            One outcome per non-empty slot, keyed by slot name
        """
        slots = [slot for slot, files in files_by_slot.items() if files]
        logger.info(f"Filling {len(slots)} form slot(s) concurrently: {', '.join(slots)}")

        settled = await asyncio.gather(
            *(self._fill_slot(slot, files_by_slot[slot]) for slot in slots),
            return_exceptions=True,
        )

        outcomes: dict[str, SlotOutcome] = {}
        for slot, result in zip(slots, settled):
            if isinstance(result, dict):
                outcome = SlotOutcome(slot=slot, status="success", data=result)
            elif isinstance(result, Exception):
                outcome = SlotOutcome(
                    slot=slot,
                    status="error",
                    error=str(result),
                    error_type=type(result).__name__,
                    raw_response=getattr(result, "raw_response", None),
                )
            else:
                # CancelledError and other BaseExceptions are not slot failures
                raise result

            form_slots_total.labels(outcome=outcome.status).inc()
            log_slot_outcome(outcome)
            outcomes[slot] = outcome

        return FormFillResult(slots=outcomes)

    async def _fill_slot(self, slot: str, files: list[UploadedFile]) -> dict:
        texts = await asyncio.gather(*(self._extractor.extract(file) for file in files))
        combined = "\n\n".join(
            mark_document(file.original_name, text) for file, text in zip(files, texts)
        )

        prompt = self.template_for(slot).render(combined)
        raw = await self._completion.complete_json(prompt)
        return parse_slot_response(slot, raw)
