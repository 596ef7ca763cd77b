"""Completion service: prompt or chat history -> text.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic fallback when no key is present for testing.
"""

import json
import logging
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from docscope.config import Settings
from docscope.errors import CompletionError
from docscope.providers.policy import CallPolicy

logger = logging.getLogger(__name__)

# OpenAI-style chat history: [{"role": "user", "content": "..."}, ...]
ChatHistory = list[dict[str, str]]


def _as_messages(prompt_or_history: str | ChatHistory) -> ChatHistory:
    if isinstance(prompt_or_history, str):
        return [{"role": "user", "content": prompt_or_history}]
    return list(prompt_or_history)


class CompletionService(Protocol):
    """Protocol for completion providers."""

    async def complete(self, prompt_or_history: str | ChatHistory) -> str:
        """Generate free text from a prompt or a chat history.

        Raises:
            CompletionError: On provider or transport failure
        """
        ...

    async def complete_json(self, prompt: str) -> str:
        """Generate a response constrained to a single JSON object.

        Returns the raw response text; parsing is the caller's concern.
        """
        ...


class DeterministicCompletionService:
    """Deterministic stub completion service (no API key required)."""

    async def complete(self, prompt_or_history: str | ChatHistory) -> str:
        """Echo a stub answer that names the last user message."""
        messages = _as_messages(prompt_or_history)
        last = messages[-1]["content"] if messages else ""
        preview = last if len(last) <= 80 else last[:77] + "..."
        return f"[stub] No completion provider configured. Last message: {preview}"

    async def complete_json(self, prompt: str) -> str:
        """Return an empty JSON object."""
        return json.dumps({})


class OpenAICompletionService:
    """OpenAI-backed completion service."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        policy: CallPolicy | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize OpenAI completions.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            policy: Call policy (delay / timeout / retries)
            client: Pre-built client (for testing)
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self._policy = policy or CallPolicy()

    async def complete(self, prompt_or_history: str | ChatHistory) -> str:
        """Generate text using the chat completions API."""
        messages = _as_messages(prompt_or_history)
        return await self._policy.execute(
            "completion", lambda: self._create(messages), error_cls=CompletionError
        )

    async def complete_json(self, prompt: str) -> str:
        """Generate a JSON object using the chat completions API in JSON mode."""
        messages = _as_messages(prompt)
        return await self._policy.execute(
            "completion",
            lambda: self._create(messages, response_format={"type": "json_object"}),
            error_cls=CompletionError,
        )

    async def _create(self, messages: ChatHistory, **kwargs: object) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                **kwargs,  # type: ignore[arg-type]
            )
        except OpenAIError as e:
            raise CompletionError(f"OpenAI completion request failed: {e}") from e

        content = response.choices[0].message.content or ""
        if not content.strip():
            raise CompletionError("OpenAI returned an empty completion")
        return content


def get_completion_service(
    settings: Settings, policy: CallPolicy | None = None
) -> CompletionService:
    """Factory function to get the completion service based on config.

    Returns:
        OpenAICompletionService if an API key is configured,
        DeterministicCompletionService otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for completions")
        return OpenAICompletionService(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            policy=policy,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub completions")
    return DeterministicCompletionService()
