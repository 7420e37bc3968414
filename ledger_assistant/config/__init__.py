"""Configuration package."""

from ledger_assistant.config.settings import (
    AppSettings,
    GatewaySettings,
    Settings,
    TransportSettings,
    VisionSettings,
    get_settings,
    validate_all_settings,
)
from ledger_assistant.config.store import MASKED_SECRET, ConfigStore

__all__ = [
    "AppSettings",
    "ConfigStore",
    "GatewaySettings",
    "MASKED_SECRET",
    "Settings",
    "TransportSettings",
    "VisionSettings",
    "get_settings",
    "validate_all_settings",
]
