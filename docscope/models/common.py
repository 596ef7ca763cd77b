"""Common types and enums shared across all models."""

from enum import Enum
from typing import Literal


class Category(str, Enum):
    """Closed set of session categories (document scopes)."""

    faculty_compatibility = "faculty_compatibility"
    faculty_consolidation = "faculty_consolidation"
    administrative_compatibility = "administrative_compatibility"
    administrative_consolidation = "administrative_consolidation"
    miscellaneous = "miscellaneous"


DEFAULT_CATEGORY = Category.miscellaneous

# Session-independent partition, optionally merged into any session's scope.
GLOBAL_PARTITION: Literal["global"] = "global"

Partition = Category | Literal["global"]


class Sender(str, Enum):
    """Author of a chat message."""

    user = "user"
    ai = "ai"
    bot = "bot"
