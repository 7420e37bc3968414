"""
Data Models Package

All data flowing through the gateway conforms to these schemas.
"""

from ledger_assistant.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from ledger_assistant.models.gateway import (
    AuthScheme,
    Conversation,
    GatewayConfig,
    ImageAttachment,
    Message,
    ProviderProfile,
    ProviderRequest,
    Role,
    StreamFragment,
    UsageCounters,
    VisionConfig,
    month_key,
)
from ledger_assistant.models.transaction import (
    OTHER_CATEGORY_ID,
    Budget,
    CanonicalCategory,
    FinancialSnapshot,
    LedgerEntry,
    TransactionCandidate,
    TransactionType,
)

__all__ = [
    # Gateway models
    "AuthScheme",
    "Conversation",
    "GatewayConfig",
    "ImageAttachment",
    "Message",
    "ProviderProfile",
    "ProviderRequest",
    "Role",
    "StreamFragment",
    "UsageCounters",
    "VisionConfig",
    "month_key",
    # Transaction models
    "OTHER_CATEGORY_ID",
    "Budget",
    "CanonicalCategory",
    "FinancialSnapshot",
    "LedgerEntry",
    "TransactionCandidate",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
