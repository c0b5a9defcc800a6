"""
emissions_ingest/services/mapping_service.py

Wiring for the assisted column-mapping backend.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from emissions_ingest.assist.llm_adapter import MockLLMAdapter, OpenAILLMAdapter
from emissions_ingest.assist.mapping_assistant import (
    LLMMappingAssistant,
    MappingAssistant,
    NullMappingAssistant,
)
from emissions_ingest.config import MappingAssistantSettings, get_mapping_assistant_settings
from emissions_ingest.mappers.header_mapper import HeaderMapper

logger = logging.getLogger(__name__)


def build_mapping_assistant(settings: MappingAssistantSettings) -> MappingAssistant:
    if settings.adapter == "mock":
        return LLMMappingAssistant(MockLLMAdapter(), max_retries=settings.max_retries)
    if settings.adapter == "openai":
        if not settings.api_key:
            logger.warning("LLM_ADAPTER=openai but no API key is set; assisted mapping disabled.")
            return NullMappingAssistant()
        adapter = OpenAILLMAdapter(
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
        )
        return LLMMappingAssistant(adapter, max_retries=settings.max_retries)
    return NullMappingAssistant()


@lru_cache(maxsize=1)
def get_header_mapper() -> HeaderMapper:
    """
    Build and cache the header mapper used by /ai/map-columns.
    """

    return HeaderMapper(assistant=build_mapping_assistant(get_mapping_assistant_settings()))
