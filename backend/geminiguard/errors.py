"""GeminiGuard error types.

Every error carries a stable ``code`` so HTTP routes and the live channel can
report it without leaking request payloads.
"""

from typing import Any, Optional


class GeminiGuardError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class ValidationError(GeminiGuardError):
    """A required input (file, text, image data) is missing or unusable."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("validation_error", message, details)


class UpstreamError(GeminiGuardError):
    """The remote model call failed, timed out or returned nothing usable."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("upstream_error", message, details)


class ProtocolError(GeminiGuardError):
    """An inbound live message was malformed or not allowed in the current state."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_error", message, details)


class PayloadTooLargeError(ValidationError):
    """An upload exceeded the configured size limit."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "payload_too_large"
