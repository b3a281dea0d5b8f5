"""Error handling module."""
from data_refinery.errors.exceptions import (
    DataRefineryError,
    ParseError,
    ValidationError,
    SessionStateError,
    LLMError,
)

__all__ = [
    "DataRefineryError",
    "ParseError",
    "ValidationError",
    "SessionStateError",
    "LLMError",
]
