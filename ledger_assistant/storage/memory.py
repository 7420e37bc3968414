"""
In-memory storage backends.

Used by tests and by hosts that persist configuration themselves.
"""

import copy
from typing import Optional
from uuid import UUID

from ledger_assistant.models.audit import AuditEvent
from ledger_assistant.storage.interface import (
    AuditStorageInterface,
    ConfigStorageInterface,
)


class InMemoryConfigStorage(ConfigStorageInterface):
    """Keeps the configuration record in a dict."""

    def __init__(self, record: Optional[dict] = None):
        self._record = copy.deepcopy(record) if record is not None else None
        self.write_count = 0

    def read(self) -> Optional[dict]:
        return copy.deepcopy(self._record) if self._record is not None else None

    def write(self, record: dict) -> None:
        self._record = copy.deepcopy(record)
        self.write_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
