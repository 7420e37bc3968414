"""
Tests for Ledger Assistant models

Test strategy:
1. Unit tests for individual components (models, validators, codecs)
2. Integration tests for flows (with a mocked provider)
3. No real API calls in tests (httpx.MockTransport)
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from ledger_assistant.models.gateway import (
    Conversation,
    GatewayConfig,
    ImageAttachment,
    ProviderRequest,
    Role,
    UsageCounters,
    VisionConfig,
    month_key,
)
from ledger_assistant.models.transaction import (
    Budget,
    CanonicalCategory,
    FinancialSnapshot,
    LedgerEntry,
    TransactionCandidate,
    TransactionType,
)
from ledger_assistant.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

from conftest import PNG_BASE64


class TestGatewayModels:
    """Tests for configuration and conversation models."""

    def test_config_usable_needs_enabled_and_key(self):
        assert GatewayConfig(api_key="k", enabled=True).is_usable
        assert not GatewayConfig(api_key="k", enabled=False).is_usable
        assert not GatewayConfig(api_key="", enabled=True).is_usable

    def test_config_repr_hides_api_key(self):
        config = GatewayConfig(api_key="sk-secret-value", enabled=True)
        assert "sk-secret-value" not in repr(config)

    def test_vision_config_defaults(self):
        vision = VisionConfig()
        assert vision.provider == "zhipu"
        assert vision.model == "glm-4v"
        assert not vision.enabled

    def test_image_attachment_splits_data_uri(self):
        image = ImageAttachment(data=f"data:image/png;base64,{PNG_BASE64}")
        assert image.data == PNG_BASE64
        assert image.mime_type == "image/png"
        assert image.data_uri == f"data:image/png;base64,{PNG_BASE64}"

    def test_image_attachment_bare_base64_defaults_to_jpeg(self):
        image = ImageAttachment(data=PNG_BASE64)
        assert image.mime_type == "image/jpeg"

    def test_image_attachment_rejects_invalid_base64(self):
        with pytest.raises(ValidationError):
            ImageAttachment(data="not base64 at all!")

    def test_image_attachment_rejects_non_image_type(self):
        with pytest.raises(ValidationError):
            ImageAttachment(data=PNG_BASE64, mime_type="application/pdf")

    def test_conversation_append_and_latest_user(self):
        conversation = Conversation.from_user_text("first")
        conversation.append(Role.ASSISTANT, "reply")
        conversation.append(Role.USER, "second")

        assert len(conversation.messages) == 3
        assert conversation.latest_user_message().content == "second"
        assert not conversation.has_images

    def test_conversation_without_user_message(self):
        conversation = Conversation()
        conversation.append(Role.ASSISTANT, "hello")
        with pytest.raises(ValueError):
            conversation.latest_user_message()

    def test_request_log_url_drops_query(self):
        request = ProviderRequest(
            url="https://example.com/v1/models/x:generateContent?key=secret",
            headers={},
            body={},
        )
        assert request.log_url == "https://example.com/v1/models/x:generateContent"

    def test_encoded_body_keeps_unicode(self):
        request = ProviderRequest(url="https://x", headers={}, body={"q": "午餐"})
        assert request.encoded_body() == '{"q":"午餐"}'.encode("utf-8")


class TestUsageCounters:
    """Tests for lazy monthly reset."""

    def test_month_key(self):
        assert month_key(date(2024, 2, 29)) == "2024-02"

    def test_recorded_in_same_month(self):
        counters = UsageCounters(monthly=5, total=50, last_month="2024-02")
        after = counters.recorded("2024-02")
        assert (after.monthly, after.total, after.last_month) == (6, 51, "2024-02")

    def test_recorded_in_new_month_resets_monthly(self):
        counters = UsageCounters(monthly=5, total=50, last_month="2024-01")
        after = counters.recorded("2024-02")
        assert (after.monthly, after.total, after.last_month) == (1, 51, "2024-02")

    def test_as_of_does_not_mutate(self):
        counters = UsageCounters(monthly=5, total=50, last_month="2024-01")
        view = counters.as_of("2024-02")
        assert view.monthly == 0
        assert counters.monthly == 5


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_candidate_rejects_non_positive_amount(self):
        with pytest.raises(ValidationError):
            TransactionCandidate(
                type=TransactionType.EXPENSE,
                amount=Decimal("0"),
                date=date(2024, 2, 1),
                confidence=0.8,
            )

    def test_candidate_confidence_bounds(self):
        with pytest.raises(ValidationError):
            TransactionCandidate(
                type=TransactionType.EXPENSE,
                amount=Decimal("1.00"),
                date=date(2024, 2, 1),
                confidence=1.5,
            )

    def test_to_transaction_record(self):
        candidate = TransactionCandidate(
            type=TransactionType.EXPENSE,
            amount=Decimal("25.50"),
            category="food",
            merchant="麦当劳",
            description="午餐",
            date=date(2024, 2, 1),
            confidence=0.9,
        )
        record = candidate.to_transaction_record(
            [CanonicalCategory(id="food", name="餐饮")]
        )

        assert record["type"] == "expense"
        assert record["amount"] == 25.5
        assert record["categoryName"] == "餐饮"
        assert record["note"] == "午餐 - 麦当劳"
        assert record["date"] == "2024-02-01"
        assert record["isAIGenerated"] is True

        created = datetime.fromisoformat(record["createdAt"])
        assert created.utcoffset() == timedelta(0)
        assert record["updatedAt"] == record["createdAt"]

    def test_snapshot_totals_and_budget(self):
        snapshot = FinancialSnapshot(
            transactions=[
                LedgerEntry(type=TransactionType.INCOME, amount=Decimal("1000"), category="salary"),
                LedgerEntry(type=TransactionType.EXPENSE, amount=Decimal("200"), category="food"),
                LedgerEntry(type=TransactionType.EXPENSE, amount=Decimal("50"), category="transport"),
            ],
            categories=[CanonicalCategory(id="food", name="餐饮")],
        )

        assert snapshot.total_income == Decimal("1000")
        assert snapshot.total_expense == Decimal("250")
        assert snapshot.expense_by_category() == {
            "餐饮": Decimal("200"),
            "transport": Decimal("50"),
        }
        assert snapshot.budget_spent(Budget(name="Food", amount=Decimal("500"), category="food")) == Decimal("200")
        assert snapshot.budget_spent(Budget(name="All", amount=Decimal("500"))) == Decimal("250")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.CALL_STARTED,
            description="Calling deepseek",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.timestamp.utcoffset() == timedelta(0)
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.call_started(
            "deepseek", "deepseek-chat", True, correlation_id
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "call_started"
        assert log_dict["provider"] == "deepseek"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"] == {"model": "deepseek-chat", "streaming": True}

    def test_call_failed_records_error(self):
        event = AuditEventBuilder.call_failed("openai", RuntimeError("boom"))
        assert event.severity == AuditSeverity.ERROR
        assert event.error_type == "RuntimeError"
        assert event.error_message == "boom"
