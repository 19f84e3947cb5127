"""Custom exceptions for live_context operations."""


class CapabilityUnavailableError(Exception):
    """Raised when a remote capability cannot be used (e.g. no API key)."""

    def __init__(self, capability: str, message: str | None = None):
        self.capability = capability
        self.message = (
            f"{capability} unavailable: {message}"
            if message
            else f"{capability} unavailable"
        )
        super().__init__(self.message)


class MalformedResponseError(Exception):
    """Raised when a remote response has the wrong shape."""

    def __init__(self, message: str | None = None):
        self.message = (
            f"Malformed response: {message}" if message else "Malformed response"
        )
        super().__init__(self.message)


class ExtractionFailedException(Exception):
    def __init__(self, message: str | None = None):
        self.message = (
            f"Extraction failed: {message}" if message else "Extraction failed"
        )
        super().__init__(self.message)


class UnsupportedFileTypeError(ExtractionFailedException):
    """Raised when no extractor can read a document."""

    pass


class UnknownConversationError(LookupError):
    """Raised by explicit facade lookups for a conversation id that is gone."""

    pass
