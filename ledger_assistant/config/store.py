"""
Usage & Configuration Store

Holds the live gateway configuration and the call counters in memory.

LIFECYCLE:
1. Loaded from the persistence collaborator on first use
2. Mutated only through save() / update() / record_call()
3. Read on every gateway call

Writing back to the collaborator is an explicit persist() step;
the store never does I/O behind the caller's back.
"""

import threading
from datetime import date
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ledger_assistant.config.settings import Settings, get_settings
from ledger_assistant.errors import InvalidConfig
from ledger_assistant.models.gateway import (
    GatewayConfig,
    UsageCounters,
    VisionConfig,
    month_key,
)
from ledger_assistant.providers.registry import profile
from ledger_assistant.storage.interface import ConfigStorageInterface


MASKED_SECRET = "***configured***"

# Persisted record key -> (section, field)
_RECORD_FIELDS: dict[str, tuple[str, str]] = {
    "provider": ("gateway", "provider"),
    "apiKey": ("gateway", "api_key"),
    "model": ("gateway", "model"),
    "enabled": ("gateway", "enabled"),
    "baseUrl": ("gateway", "base_url"),
    "visionProvider": ("vision", "provider"),
    "visionApiKey": ("vision", "api_key"),
    "visionModel": ("vision", "model"),
    "visionEnabled": ("vision", "enabled"),
}

# Older records named the vision provider after its vendor
_LEGACY_ALIASES = {
    "zhipuApiKey": "visionApiKey",
    "zhipuModel": "visionModel",
    "zhipuEnabled": "visionEnabled",
}

_SNAKE_ALIASES = {
    "api_key": "apiKey",
    "base_url": "baseUrl",
    "vision_provider": "visionProvider",
    "vision_api_key": "visionApiKey",
    "vision_model": "visionModel",
    "vision_enabled": "visionEnabled",
}


def _canonical_key(key: str) -> str:
    key = _LEGACY_ALIASES.get(key, key)
    return _SNAKE_ALIASES.get(key, key)


class ConfigStore:
    """
    In-memory cache of GatewayConfig, VisionConfig and UsageCounters.

    Thread-safe: every read and mutation takes the same lock.
    """

    def __init__(
        self,
        storage: Optional[ConfigStorageInterface] = None,
        settings: Optional[Settings] = None,
        today: Callable[[], date] = date.today,
    ):
        self._storage = storage
        self._settings = settings or get_settings()
        self._today = today
        self._lock = threading.RLock()
        self._loaded = False
        self._config = GatewayConfig()
        self._vision = VisionConfig()
        self._usage = UsageCounters()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _defaults(self) -> tuple[GatewayConfig, VisionConfig]:
        gateway = self._settings.gateway
        vision = self._settings.vision
        return (
            GatewayConfig(
                provider=gateway.provider,
                api_key=gateway.api_key,
                model=gateway.model,
                enabled=gateway.enabled,
                base_url=gateway.base_url,
            ),
            VisionConfig(
                provider=vision.provider,
                api_key=vision.api_key,
                model=vision.model,
                enabled=vision.enabled,
            ),
        )

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        config, vision = self._defaults()
        usage = UsageCounters()
        record = self._storage.read() if self._storage else None
        if record:
            config, vision = self._apply(config, vision, record)
            usage = UsageCounters(
                monthly=int(record.get("monthly") or 0),
                total=int(record.get("total") or 0),
                last_month=str(record.get("lastMonth") or ""),
            )
        self._config, self._vision, self._usage = config, vision, usage
        self._loaded = True

    def reload(self) -> GatewayConfig:
        """Drop the cache and read the collaborator again."""
        with self._lock:
            self._loaded = False
            self._ensure_loaded()
            return self._config

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def load(self) -> GatewayConfig:
        with self._lock:
            self._ensure_loaded()
            return self._config

    def load_vision(self) -> VisionConfig:
        with self._lock:
            self._ensure_loaded()
            return self._vision

    def save(self, config: GatewayConfig) -> None:
        profile(config.provider)
        with self._lock:
            self._ensure_loaded()
            self._config = config

    def save_vision(self, config: VisionConfig) -> None:
        profile(config.provider)
        with self._lock:
            self._ensure_loaded()
            self._vision = config

    def update(self, partial: dict[str, Any]) -> list[str]:
        """
        Merge a partial record into the live configuration.

        Keys use the persisted record names (apiKey, visionEnabled, ...);
        snake_case and legacy zhipu* names are accepted too.
        A masked secret means "unchanged".

        Returns the record keys that changed.

        Raises:
            InvalidConfig: On unknown keys or values of the wrong type
            UnknownProvider: If a provider id is not registered
        """
        normalized = {_canonical_key(key): value for key, value in partial.items()}
        unknown = sorted(set(normalized) - set(_RECORD_FIELDS))
        if unknown:
            raise InvalidConfig(f"Unknown configuration fields: {', '.join(unknown)}")

        with self._lock:
            self._ensure_loaded()
            before = self.to_record()
            self._config, self._vision = self._apply(
                self._config, self._vision, normalized
            )
            after = self.to_record()
        return [key for key in _RECORD_FIELDS if before.get(key) != after.get(key)]

    def _apply(
        self,
        config: GatewayConfig,
        vision: VisionConfig,
        record: dict[str, Any],
    ) -> tuple[GatewayConfig, VisionConfig]:
        updates: dict[str, dict[str, Any]] = {"gateway": {}, "vision": {}}
        for key, value in record.items():
            key = _canonical_key(key)
            if key not in _RECORD_FIELDS:
                continue
            section, field = _RECORD_FIELDS[key]
            if field == "api_key":
                if value == MASKED_SECRET:
                    continue
                value = value or ""
            if field == "enabled" and value is None:
                value = False
            updates[section][field] = value

        merged_config = self._merge(config, updates["gateway"])
        merged_vision = self._merge(vision, updates["vision"])
        return merged_config, merged_vision

    @staticmethod
    def _merge(config, changes: dict[str, Any]):
        data = config.model_dump()
        data.update(changes)
        provider_profile = profile(data["provider"])
        if data.get("model") not in provider_profile.selectable_models:
            # Switching provider without naming a model keeps the call valid
            if "provider" in changes and "model" not in changes:
                data["model"] = provider_profile.default_model
        try:
            return type(config)(**data)
        except ValidationError as e:
            raise InvalidConfig(f"Invalid configuration: {e}") from e

    # -------------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------------

    def record_call(self, today: Optional[date] = None) -> UsageCounters:
        """Count one successful call (monthly count resets lazily)."""
        current = month_key(today or self._today())
        with self._lock:
            self._ensure_loaded()
            self._usage = self._usage.recorded(current)
            return self._usage

    def stats(self, today: Optional[date] = None) -> UsageCounters:
        current = month_key(today or self._today())
        with self._lock:
            self._ensure_loaded()
            return self._usage.as_of(current)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Full persisted record, credentials included."""
        with self._lock:
            self._ensure_loaded()
            return {
                "provider": self._config.provider,
                "apiKey": self._config.api_key,
                "model": self._config.model,
                "enabled": self._config.enabled,
                "baseUrl": self._config.base_url,
                "visionProvider": self._vision.provider,
                "visionApiKey": self._vision.api_key,
                "visionModel": self._vision.model,
                "visionEnabled": self._vision.enabled,
                "monthly": self._usage.monthly,
                "total": self._usage.total,
                "lastMonth": self._usage.last_month,
            }

    def public_view(self) -> dict[str, Any]:
        """Record safe to show in a settings screen (secrets masked)."""
        record = self.to_record()
        for key in ("apiKey", "visionApiKey"):
            record[key] = MASKED_SECRET if record[key] else ""
        return record

    def persist(self) -> None:
        """Write the current record to the persistence collaborator."""
        if self._storage is None:
            return
        self._storage.write(self.to_record())
