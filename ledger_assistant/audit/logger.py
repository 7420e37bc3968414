"""
Audit Logger

DESIGN DECISION: Every provider call, routing decision and extraction
is logged. This provides:
1. Traceability of what was sent to which provider
2. Debugging capability when a provider changes its envelope
3. A record of dropped candidates

The audit logger:
- Is async to not block the main flow
- Gracefully handles sink failures (never crashes a call because logging failed)
- Supports correlation IDs to trace related events
- Never receives credentials or image payloads
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger_assistant.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledger_assistant.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit sink, if one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Sink for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledger_assistant.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_config_updated(self, provider: str, fields: list[str]) -> None:
        await self.log(AuditEventBuilder.config_updated(provider, fields))

    async def log_call_started(
        self,
        provider: str,
        model: str,
        streaming: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.call_started(
            provider=provider,
            model=model,
            streaming=streaming,
            correlation_id=correlation_id,
        ))

    async def log_call_completed(
        self,
        provider: str,
        characters: int,
        fragments: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.call_completed(
            provider=provider,
            characters=characters,
            fragments=fragments,
            correlation_id=correlation_id,
        ))

    async def log_call_failed(
        self,
        provider: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.call_failed(provider, error, correlation_id))

    async def log_fallback_reply(
        self,
        characters: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.fallback_reply(characters, correlation_id))

    async def log_vision_routed(
        self,
        primary: str,
        target: str,
        direct: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.vision_routed(primary, target, direct, correlation_id))

    async def log_vision_failed(
        self,
        primary: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.vision_failed(primary, error, correlation_id))

    async def log_extraction_completed(
        self,
        candidates: int,
        dropped: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(candidates, dropped, correlation_id))

    async def log_extraction_failed(
        self,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_failed(error, correlation_id))

    async def log_candidate_dropped(
        self,
        index: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.candidate_dropped(index, reason, correlation_id))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a receipt import).
    Pass it through all subsequent operations.
    """
    return uuid4()
