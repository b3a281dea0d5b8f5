"""Custom exception hierarchy for data refinery errors."""


class DataRefineryError(Exception):
    """Base exception for all data refinery errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class ParseError(DataRefineryError):
    """Raised when an uploaded file cannot be turned into a table."""
    pass


class ValidationError(DataRefineryError):
    """Raised when a user request fails validation (e.g. nothing to export)."""
    pass


class SessionStateError(DataRefineryError):
    """Raised when a session operation is called in the wrong state."""
    pass


class LLMError(DataRefineryError):
    """Raised when the suggestion backend returns an unusable response."""
    pass
