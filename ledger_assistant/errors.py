"""
Gateway Errors

Every failure the gateway surfaces is one of these.
Configuration and routing errors are raised before any network traffic;
provider and stream errors carry what the provider told us.
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for all gateway errors."""
    pass


class UnknownProvider(GatewayError):
    """Provider identifier is not registered."""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Unknown AI provider: {provider_id!r}")


class InvalidConfig(GatewayError):
    """Configuration is missing, disabled or inconsistent with the provider."""
    pass


class ProviderError(GatewayError):
    """
    Provider returned a non-2xx status or reported a failure.

    `message` is taken from the provider's error envelope when present,
    otherwise it is the raw response body. The UI renders it directly.
    """

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"Provider error ({status}): {message}")


class StreamDecodeError(GatewayError):
    """Transport-level failure while reading a streaming response."""
    pass


class VisionNotConfigured(GatewayError):
    """Image recognition needs a vision provider and none is enabled."""
    pass


class ExtractionParseError(GatewayError):
    """Model answer has no structured payload, or it does not parse."""

    def __init__(self, message: str, answer: Optional[str] = None):
        self.answer = answer
        super().__init__(message)


class CallbackError(GatewayError):
    """The caller's fragment callback raised; the call was aborted."""
    pass
