"""
emissions_ingest/assist/mapping_assistant.py

Assisted column mapping.

The assistant is an optional capability. `LLMMappingAssistant.suggest`
always returns a structurally valid HeaderMapping: formatting failures are
retried, and anything else degrades to an all-null mapping with a note.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError

from emissions_ingest.assist.llm_adapter import BaseLLMAdapter
from emissions_ingest.domain.canonical import CanonicalField, HeaderMapping

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You map messy CSV column names to schema keys: "
    + ", ".join(member.value for member in CanonicalField)
    + ". Use each schema key at most once. "
    "Return JSON {\"mapping\": {inputHeader: schemaKey|null}, \"notes\": string}."
)

FALLBACK_NOTE = "Assisted mapping unavailable; map columns manually."


class MappingAssistant(Protocol):
    def suggest(self, headers: Sequence[str]) -> HeaderMapping:
        ...


class NullMappingAssistant:
    """
    Used when no suggestion backend is configured.
    """

    def suggest(self, headers: Sequence[str]) -> HeaderMapping:
        return HeaderMapping.empty(list(headers), notes=FALLBACK_NOTE)


class _SuggestionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mapping: dict[str, Any]
    notes: str | None = None


class MappingSuggestionFormatError(ValueError):
    """Raised when the model response is not the expected JSON shape."""


class LLMMappingAssistant:
    """
    Suggests mappings through a chat-completion adapter.
    """

    def __init__(self, adapter: BaseLLMAdapter, *, max_retries: int = 2) -> None:
        self._adapter = adapter
        self._max_retries = max(0, max_retries)

    def suggest(self, headers: Sequence[str]) -> HeaderMapping:
        header_list = [header for header in headers if isinstance(header, str)]
        try:
            payload = self._generate_with_retry(header_list)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Assisted mapping failed; falling back to empty mapping: %s", exc)
            return HeaderMapping.empty(header_list, notes=FALLBACK_NOTE)
        return self._sanitize(payload, header_list)

    def _generate_with_retry(self, headers: list[str]) -> _SuggestionPayload:
        user_prompt = "Headers:\n" + json.dumps(headers)
        total_attempts = 1 + self._max_retries
        attempt = 1

        while True:
            raw = self._adapter.generate(SYSTEM_PROMPT, user_prompt)
            try:
                return self._parse(raw)
            except MappingSuggestionFormatError as exc:
                logger.warning(
                    "Mapping suggestion attempt %d/%d was malformed: %s",
                    attempt,
                    total_attempts,
                    exc,
                )
                if attempt >= total_attempts:
                    raise
                attempt += 1

    @staticmethod
    def _parse(raw: str) -> _SuggestionPayload:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MappingSuggestionFormatError(f"Response is not JSON: {exc}") from exc
        try:
            return _SuggestionPayload.model_validate(data)
        except ValidationError as exc:
            raise MappingSuggestionFormatError(f"Response has the wrong shape: {exc}") from exc

    @staticmethod
    def _sanitize(payload: _SuggestionPayload, headers: list[str]) -> HeaderMapping:
        notes: list[str] = []
        if payload.notes:
            notes.append(payload.notes)

        result: dict[str, CanonicalField | None] = {header: None for header in headers}
        claimed: dict[CanonicalField, str] = {}
        unknown: list[str] = []
        for header in headers:
            if header not in payload.mapping:
                continue
            try:
                canonical = CanonicalField.parse(payload.mapping[header])
            except ValueError:
                unknown.append(header)
                continue
            if canonical is None:
                continue
            if canonical in claimed:
                notes.append(
                    f"'{canonical.value}' was suggested for both '{claimed[canonical]}' and '{header}'; "
                    f"kept '{claimed[canonical]}'."
                )
                continue
            claimed[canonical] = header
            result[header] = canonical

        if unknown:
            notes.append(f"Ignored unknown field suggestions for: {', '.join(unknown)}.")

        return HeaderMapping(mapping=result, notes=" ".join(notes) or None)
