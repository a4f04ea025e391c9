"""
Core module for StudyForge
Contains JSON recovery and base types with minimal dependencies
"""

from .json_utils import (
    ExtractionResult,
    ExtractionStatus,
    extract_candidate,
    resolve_structured,
    resolve_structured_result,
    sanitize_text,
)
from .types import OutputKind

__all__ = [
    "ExtractionResult",
    "ExtractionStatus",
    "OutputKind",
    "extract_candidate",
    "resolve_structured",
    "resolve_structured_result",
    "sanitize_text",
]
