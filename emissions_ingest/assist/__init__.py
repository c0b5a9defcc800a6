"""
emissions_ingest/assist package marker.
"""

from emissions_ingest.assist.llm_adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from emissions_ingest.assist.mapping_assistant import (
    LLMMappingAssistant,
    MappingAssistant,
    NullMappingAssistant,
)

__all__ = [
    "BaseLLMAdapter",
    "LLMMappingAssistant",
    "MappingAssistant",
    "MockLLMAdapter",
    "NullMappingAssistant",
    "OpenAILLMAdapter",
]
