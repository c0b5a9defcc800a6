"""LLM adapters for assisted column mapping.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Optional


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Send prompts to the LLM and return the raw response text.

        Args:
            system_prompt: Instructions describing the expected JSON shape.
            user_prompt: The request payload.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Configured for deterministic, non-streaming JSON object output.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 1024,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Per-request timeout.
        """
        from openai import OpenAI

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key, "timeout": timeout_seconds}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Call the OpenAI chat completion API in JSON mode."""
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=0,
            top_p=1,
            max_tokens=self._max_tokens,
            stream=False,
            seed=42,
        )
        return response.choices[0].message.content or ""


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter for local testing and CI.

    Maps a header to the canonical field of the same name (after
    lower-casing and replacing spaces with underscores) and everything
    else to null.
    """

    _FIELDS = (
        "facility_name",
        "year",
        "month",
        "co2e_tonnes",
        "scope",
        "source",
        "method",
        "dataset_version",
    )

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        headers = json.loads(user_prompt.split("\n", 1)[1])
        mapping = {}
        for header in headers:
            candidate = str(header).strip().lower().replace(" ", "_")
            mapping[header] = candidate if candidate in self._FIELDS else None
        return json.dumps({"mapping": mapping, "notes": "Mock suggestion."})
