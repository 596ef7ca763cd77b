"""Multi-document report synthesis on top of form extraction.

A report config maps upload fields to form slots and holds a final prompt with
one `_JSON_<SLOT>_` placeholder per slot. Each placeholder is replaced with that
slot's extracted JSON before the completion call.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from docscope.errors import CompletionError, FormConfigurationError, ReportGenerationError
from docscope.forms.orchestrator import FormExtractionOrchestrator
from docscope.models.docs import UploadedFile
from docscope.models.results import FormFillResult, ReportResult
from docscope.providers.completion import CompletionService

logger = logging.getLogger(__name__)


def slot_placeholder(slot: str) -> str:
    return f"_JSON_{slot.upper()}_"


@dataclass(frozen=True)
class ReportConfig:
    """Per-report configuration data (no per-report control flow)."""

    report_type: str
    prompt_template: str
    # upload field name -> form slot
    field_mappings: dict[str, str] = field(default_factory=dict)


_COMPATIBILITY_PROMPT = """Write a compatibility report for the positions held by one person.
The forms below were extracted from the submitted documents. Flag every schedule overlap,
every incompatible combination of positions, and any missing information.

Form 1:
_JSON_FORM1_

Form 2:
_JSON_FORM2_

Form 3:
_JSON_FORM3_
"""

FACULTY_COMPATIBILITY = ReportConfig(
    report_type="Faculty compatibility",
    prompt_template=_COMPATIBILITY_PROMPT,
    field_mappings={"form1File": "form1", "form2File": "form2", "form3File": "form3"},
)

ADMINISTRATIVE_COMPATIBILITY = ReportConfig(
    report_type="Administrative compatibility",
    prompt_template=_COMPATIBILITY_PROMPT + "\nAdditional form:\n_JSON_EXTRA_\n",
    field_mappings={
        "form1File": "form1",
        "form2File": "form2",
        "form3File": "form3",
        "form4File": "extra",
    },
)

CONSOLIDATED = ReportConfig(
    report_type="Consolidated",
    prompt_template=(
        "Consolidate the following extracted reports into a single summary report, "
        "grouped by person and position.\n\n_JSON_COMP_\n"
    ),
    field_mappings={"compFile": "comp"},
)

REPORT_CONFIGS: dict[str, ReportConfig] = {
    "faculty": FACULTY_COMPATIBILITY,
    "administrative": ADMINISTRATIVE_COMPATIBILITY,
    "consolidated": CONSOLIDATED,
}


def get_report_config(key: str) -> ReportConfig:
    """Look up a built-in report config.

    Raises:
        FormConfigurationError: Unknown report key
    """
    try:
        return REPORT_CONFIGS[key]
    except KeyError as e:
        valid = ", ".join(REPORT_CONFIGS)
        raise FormConfigurationError(f"Unknown report '{key}' (expected one of: {valid})") from e


def render_report_prompt(template: str, forms: FormFillResult) -> str:
    """Substitute each slot's JSON (or an explicit error marker) into the template."""
    prompt = template
    for slot, outcome in forms.slots.items():
        if outcome.status == "success":
            payload = outcome.data
        else:
            payload = {"error": f"form could not be extracted: {outcome.error}"}
        prompt = prompt.replace(
            slot_placeholder(slot), json.dumps(payload, indent=2, ensure_ascii=False)
        )
    return prompt


class ReportGenerator:
    """fill_forms for the config's slots, then one completion for the report text."""

    def __init__(self, orchestrator: FormExtractionOrchestrator, completion: CompletionService):
        self._orchestrator = orchestrator
        self._completion = completion

    async def generate(
        self, config: ReportConfig, files_by_field: Mapping[str, list[UploadedFile]]
    ) -> ReportResult:
        """Generate a report from uploaded files grouped by upload field.

        Fields that the config does not map are ignored.

        Raises:
            ReportGenerationError: No mapped field has files, every slot failed,
                or the final completion failed
        """
        files_by_slot = {
            config.field_mappings[name]: files
            for name, files in files_by_field.items()
            if name in config.field_mappings and files
        }
        if not files_by_slot:
            raise ReportGenerationError(
                f"No files were provided for any form of the {config.report_type} report"
            )

        logger.info(f"Generating {config.report_type} report from {len(files_by_slot)} form(s)")
        forms = await self._orchestrator.fill_forms(files_by_slot)

        if not forms.data:
            reasons = "; ".join(f"{s}: {o.error}" for s, o in forms.slots.items())
            raise ReportGenerationError(f"No form could be extracted ({reasons})")

        prompt = render_report_prompt(config.prompt_template, forms)
        try:
            report_text = await self._completion.complete(prompt)
        except CompletionError as e:
            raise ReportGenerationError(f"Report completion failed: {e}") from e

        return ReportResult(report_type=config.report_type, report_text=report_text, forms=forms)
