"""
Audit Models for the AI Gateway

Every call to a provider, every routing decision and every extraction
is recorded. This gives:
1. Traceability of what was sent where
2. Debugging information when a provider misbehaves
3. A record of which candidates were dropped and why

DESIGN DECISION: Audit events never contain credentials or image data.
Only identifiers, sizes and outcomes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Configuration
    CONFIG_UPDATED = "config_updated"

    # Provider calls
    CALL_STARTED = "call_started"
    CALL_COMPLETED = "call_completed"
    CALL_FAILED = "call_failed"
    FALLBACK_REPLY = "fallback_reply"

    # Vision
    VISION_ROUTED = "vision_routed"
    VISION_FAILED = "vision_failed"

    # Extraction
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    CANDIDATE_DROPPED = "candidate_dropped"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    provider: Optional[str] = Field(
        default=None,
        description="Provider the event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_type: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "provider": self.provider,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.call_started("deepseek", "deepseek-chat", True, cid)
    """

    @staticmethod
    def config_updated(
        provider: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIG_UPDATED,
            provider=provider,
            description=f"Gateway configuration updated ({len(fields)} fields)",
            details={"fields": sorted(fields)},
        )

    @staticmethod
    def call_started(
        provider: str,
        model: str,
        streaming: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALL_STARTED,
            severity=AuditSeverity.DEBUG,
            provider=provider,
            correlation_id=correlation_id,
            description=f"Calling {provider} ({model})",
            details={"model": model, "streaming": streaming},
        )

    @staticmethod
    def call_completed(
        provider: str,
        characters: int,
        fragments: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALL_COMPLETED,
            provider=provider,
            correlation_id=correlation_id,
            description=f"{provider} answered with {characters} characters",
            details={"characters": characters, "fragments": fragments},
        )

    @staticmethod
    def call_failed(
        provider: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALL_FAILED,
            severity=AuditSeverity.ERROR,
            provider=provider,
            correlation_id=correlation_id,
            description=f"Call to {provider} failed",
            error_type=type(error).__name__,
            error_message=str(error)[:500],
            details={"status": getattr(error, "status", None)},
        )

    @staticmethod
    def fallback_reply(
        characters: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FALLBACK_REPLY,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Gateway unconfigured; answered with canned reply",
            details={"characters": characters},
        )

    @staticmethod
    def vision_routed(
        primary: str,
        target: str,
        direct: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        route = "directly" if direct else f"via {target}"
        return AuditEvent(
            event_type=AuditEventType.VISION_ROUTED,
            provider=target,
            correlation_id=correlation_id,
            description=f"Image recognition sent {route}",
            details={"primary": primary, "target": target, "direct": direct},
        )

    @staticmethod
    def vision_failed(
        primary: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VISION_FAILED,
            severity=AuditSeverity.ERROR,
            provider=primary,
            correlation_id=correlation_id,
            description="Image recognition failed",
            error_type=type(error).__name__,
            error_message=str(error)[:500],
        )

    @staticmethod
    def extraction_completed(
        candidates: int,
        dropped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            correlation_id=correlation_id,
            description=f"Extracted {candidates} candidates ({dropped} dropped)",
            details={"candidates": candidates, "dropped": dropped},
        )

    @staticmethod
    def extraction_failed(
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Structured payload could not be parsed",
            error_type=type(error).__name__,
            error_message=str(error)[:500],
        )

    @staticmethod
    def candidate_dropped(
        index: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CANDIDATE_DROPPED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Dropped element {index}: {reason}",
            details={"index": index, "reason": reason},
        )
