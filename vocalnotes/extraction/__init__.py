"""
Listing extraction boundary for vocalnotes.

Design intent:
- Ask a language model for every schema field, with null for "not mentioned".
- Always pass the current property so results are incremental.
- Strip unknowns and validate before anything reaches the merge engine.
"""

from .base import ExtractionProvider
from .llama_cpp_extractor import LlamaCppExtractionProvider
from .mock import MockExtractionProvider
from .openai_extractor import OpenAIExtractionProvider
from .unknowns import parse_partial_property, strip_unknown, unknown_template

__all__ = [
    "ExtractionProvider",
    "LlamaCppExtractionProvider",
    "MockExtractionProvider",
    "OpenAIExtractionProvider",
    "parse_partial_property",
    "strip_unknown",
    "unknown_template",
]
