"""Custom exception types for the feed filter.

Error messages follow one pattern throughout the package:
- What failed (specific operation or component)
- Why it failed (the specific condition)
- How to fix it, where there is something to fix
"""


class FeedFilterError(Exception):
    """Base exception for all feed filter errors."""

    pass


class ConfigValidationError(FeedFilterError):
    """Raised when config.yaml fails Pydantic validation.

    Includes specific field errors with actionable messages.
    """

    pass


class ConfigLoadError(FeedFilterError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class ClassificationError(FeedFilterError):
    """Raised when the completion endpoint cannot produce a decision.

    Covers transport failures, non-2xx responses and malformed bodies.
    Callers treat this as "keep" and never cache it.

    Attributes:
        status_code: HTTP status code, if the endpoint answered at all
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DatabaseError(FeedFilterError):
    """Raised when SQLite operations fail."""

    pass


class BridgeProtocolError(FeedFilterError):
    """Raised when an inbound bridge message cannot be parsed.

    The bridge loop logs and skips the offending line.
    """

    pass
