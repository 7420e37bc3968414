"""AI provider profiles, request formatting and response normalization."""

from ledger_assistant.providers.formatter import (
    DEFAULT_MAX_TOKENS,
    format_request,
    format_vision_request,
)
from ledger_assistant.providers.normalizer import error_message, extract, extract_delta
from ledger_assistant.providers.registry import list_profiles, profile

__all__ = [
    "DEFAULT_MAX_TOKENS",
    "error_message",
    "extract",
    "extract_delta",
    "format_request",
    "format_vision_request",
    "list_profiles",
    "profile",
]
