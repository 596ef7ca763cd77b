"""Trigger phrase table: default entries and JSON file loading."""

from pathlib import Path

from pydantic import TypeAdapter

from docscope.models.common import Category
from docscope.models.triggers import Trigger

DEFAULT_TRIGGERS: tuple[Trigger, ...] = (
    Trigger(
        category=Category.faculty_compatibility,
        phrase="I want to check the compatibility of a faculty member's positions",
        confirmation=(
            "Switched to faculty compatibility. Upload the documents for each form "
            "and I will check the positions against each other."
        ),
        specialized_task=True,
    ),
    Trigger(
        category=Category.faculty_consolidation,
        phrase="I need to consolidate the faculty reports into one document",
        confirmation="Switched to faculty consolidation. Upload the reports to consolidate.",
        specialized_task=True,
    ),
    Trigger(
        category=Category.administrative_compatibility,
        phrase="I want to check the compatibility of an administrative employee's positions",
        confirmation=(
            "Switched to administrative compatibility. Upload the documents for each form "
            "and I will check the positions against each other."
        ),
        specialized_task=True,
    ),
    Trigger(
        category=Category.administrative_consolidation,
        phrase="I need to consolidate the administrative staff reports",
        confirmation="Switched to administrative consolidation. Upload the reports to consolidate.",
        specialized_task=True,
    ),
    Trigger(
        category=Category.miscellaneous,
        phrase="Let's go back to a general conversation about my documents",
        confirmation="Back to general chat. Your general documents are available again.",
    ),
)

_TRIGGER_LIST = TypeAdapter(list[Trigger])


def load_triggers(path: str | Path | None = None) -> tuple[Trigger, ...]:
    """Load the trigger table from a JSON list, or return the defaults.

    The file holds objects with category, phrase, confirmation and an optional
    specialized_task flag. Declaration order is preserved (it breaks ties).

    Raises:
        pydantic.ValidationError: Malformed entry or unknown category
    """
    if path is None:
        return DEFAULT_TRIGGERS
    return tuple(_TRIGGER_LIST.validate_json(Path(path).read_bytes()))
