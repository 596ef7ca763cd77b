"""Context trigger models."""

from pydantic import BaseModel, ConfigDict

from docscope.models.common import Category


class Trigger(BaseModel):
    """Static phrase that signals an intent to switch the active category."""

    model_config = ConfigDict(frozen=True)

    category: Category
    phrase: str
    confirmation: str
    specialized_task: bool = False


class EmbeddedTrigger(BaseModel):
    """Trigger paired with its precomputed phrase embedding."""

    model_config = ConfigDict(frozen=True)

    trigger: Trigger
    embedding: tuple[float, ...]


class TriggerTable(BaseModel):
    """Immutable lookup table built once at startup, in declaration order."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[EmbeddedTrigger, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def confirmation_for(self, category: Category) -> str:
        """Canned confirmation message of the first trigger for a category."""
        for entry in self.entries:
            if entry.trigger.category == category:
                return entry.trigger.confirmation
        return f"Context switched to {category.value}."
