"""
Abstract Storage Interface

DESIGN DECISION: The gateway does not own a database.
Configuration and audit events are handed to collaborators
through these interfaces, so the host application decides
where they live (user table, local file, memory for tests).
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from ledger_assistant.models.audit import AuditEvent


class ConfigStorageInterface(ABC):
    """
    Persistence collaborator for the gateway configuration record.

    The record shape is:
        {provider, apiKey, model, enabled,
         visionProvider, visionApiKey, visionModel, visionEnabled,
         monthly, total, lastMonth}
    """

    @abstractmethod
    def read(self) -> Optional[dict]:
        """
        Read the stored configuration record.

        Returns:
            The record, or None if nothing was ever saved

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, record: dict) -> None:
        """
        Replace the stored configuration record.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one receipt import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptRecordError(StorageError):
    """Stored record exists but cannot be decoded."""
    pass
