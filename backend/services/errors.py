"""Typed failures surfaced to callers of the assistant."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ErrorDetail:
    """Structured error payload."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class AssistantError(Exception):
    """Base exception for assistant failures with structured error information."""

    code = "ASSISTANT_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.error = ErrorDetail(code=self.code, message=message, details=details or {})
        super().__init__(message)


class InvalidEndpointError(AssistantError):
    """A resolved endpoint URL is malformed or unusable."""
    code = "INVALID_ENDPOINT"


class ChannelUnavailableError(AssistantError):
    """Tor was requested but no Tor channel is configured."""
    code = "CHANNEL_UNAVAILABLE"

    def __init__(self, message: str = "Tor proxy is not configured. Enable Tor in Privacy settings.",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UpstreamHTTPError(AssistantError):
    """Inference backend answered with a non-200 status."""
    code = "UPSTREAM_HTTP_ERROR"

    def __init__(self, status_code: int, server_message: Optional[str] = None):
        self.status_code = status_code
        self.server_message = server_message
        message = server_message if server_message else f"HTTP Error: {status_code}"
        super().__init__(message, {"status_code": status_code})


class DecodeError(AssistantError):
    """Inference backend response envelope could not be decoded."""
    code = "DECODE_ERROR"

    def __init__(self, message: str = "Failed to decode response", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UpstreamUnavailableError(AssistantError):
    """Inference backend timed out or could not be reached."""
    code = "UPSTREAM_UNAVAILABLE"
