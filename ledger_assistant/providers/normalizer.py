"""
Response Normalizer

Gets the plain answer text out of any provider's envelope.
Pure per-provider mapping, no shared state.
"""

from typing import Any, Optional

from ledger_assistant.errors import ProviderError
from ledger_assistant.models.gateway import ProviderProfile


def error_message(payload: Any) -> Optional[str]:
    """
    Message from a provider error envelope, if the payload is one.

    Handles {"error": {"message": ...}}, {"error": "..."}
    and {"message": ...} shapes.
    """
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if message:
            return str(message)
        code = error.get("code") or error.get("type")
        return str(code) if code else str(error)
    if isinstance(error, str) and error:
        return error
    if payload.get("type") == "error" and payload.get("message"):
        return str(payload["message"])
    return None


def extract(profile: ProviderProfile, envelope: Any) -> str:
    """
    Final answer text of a non-streamed response.

    Raises:
        ProviderError: If the envelope reports an error or
                       does not have the provider's shape
    """
    reported = error_message(envelope)
    if reported is not None:
        raise ProviderError(None, reported)
    if not isinstance(envelope, dict):
        raise ProviderError(None, f"Unexpected response from {profile.display_name}")
    try:
        return profile.extract_text(envelope)
    except (KeyError, IndexError, TypeError, AttributeError):
        raise ProviderError(
            None,
            f"Unexpected response envelope from {profile.display_name}",
        ) from None


def extract_delta(profile: ProviderProfile, frame: Any) -> Optional[str]:
    """
    Text delta carried by one stream frame.

    Returns None for frames without text (role-only, usage, metadata).

    Raises:
        ProviderError: If the frame is an in-stream error event
    """
    if not isinstance(frame, dict):
        return None
    reported = error_message(frame)
    if reported is not None:
        raise ProviderError(None, reported)
    try:
        delta = profile.extract_delta(frame)
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return delta or None
