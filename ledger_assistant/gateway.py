"""
AI Gateway

This module ties the components together and defines the
end-to-end flows the application calls:
1. Chat (question → session → streamed answer)
2. Image recognition (image → vision routing → text)
3. Import (text or image → extraction → candidates → user review)
4. Configuration and usage

DESIGN DECISION: The gateway holds no per-call state.
Every call reads the current configuration from the ConfigStore and
builds a fresh session, so a saved change applies to the next call.

BOUNDARIES:
- Candidates are returned for review; the gateway never saves transactions
- Unconfigured chat degrades to canned replies; every other operation fails fast
- Every call is audited
"""

from typing import Any, Optional, Union

import structlog

from ledger_assistant.agents import (
    CannedResponder,
    ConversationalSession,
    FinancialAdvisor,
    TransactionExtractor,
    VisionRouter,
)
from ledger_assistant.agents.session import FragmentCallback
from ledger_assistant.audit import AuditLogger, create_correlation_id
from ledger_assistant.config import ConfigStore, Settings, get_settings
from ledger_assistant.errors import InvalidConfig
from ledger_assistant.models.gateway import Conversation, ImageAttachment
from ledger_assistant.models.transaction import (
    CanonicalCategory,
    FinancialSnapshot,
    TransactionCandidate,
)
from ledger_assistant.providers.registry import profile
from ledger_assistant.storage import (
    AuditStorageInterface,
    ConfigStorageInterface,
    StorageError,
)
from ledger_assistant.transport import ClientFactory, Transport
from ledger_assistant.validation import CandidateValidator


logger = structlog.get_logger(__name__)

CONNECTION_TEST_QUESTION = 'Reply briefly with "connected".'


class AIGateway:
    """
    Inbound surface of the AI subsystem.

    Construct one per application (see create_gateway).
    """

    def __init__(
        self,
        store: ConfigStore,
        transport: Transport,
        settings: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
        canned_responder: Optional[CannedResponder] = None,
    ):
        self._store = store
        self._transport = transport
        self._settings = settings or get_settings()
        self._audit = audit_logger or AuditLogger()
        self._advisor = FinancialAdvisor()
        self._canned = canned_responder or CannedResponder(
            self._settings.app.simulated_stream_delay_seconds
        )

    @property
    def store(self) -> ConfigStore:
        return self._store

    # -------------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------------

    def _record_usage(self) -> None:
        self._store.record_call()
        try:
            self._store.persist()
        except StorageError as e:
            # The answer is already in hand; the count catches up on next persist
            logger.warning("usage_persist_failed", error=str(e))

    def _session(self, system_prompt: Optional[str] = None) -> ConversationalSession:
        config = self._store.load()
        return ConversationalSession(
            profile=profile(config.provider),
            config=config,
            transport=self._transport,
            usage_recorder=self._record_usage,
            system_prompt=(
                self._settings.app.system_prompt if system_prompt is None else system_prompt
            ),
            max_tokens=self._settings.gateway.max_tokens,
            audit_logger=self._audit,
        )

    def _vision_router(self) -> VisionRouter:
        return VisionRouter(
            transport=self._transport,
            usage_recorder=self._record_usage,
            max_tokens=self._settings.gateway.max_tokens,
            audit_logger=self._audit,
        )

    def _extractor(self) -> TransactionExtractor:
        return TransactionExtractor(
            session=self._session(),
            validator=CandidateValidator(self._settings.app.default_confidence),
            max_source_chars=self._settings.app.max_source_text_chars,
            audit_logger=self._audit,
        )

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def ask(
        self,
        conversation: Conversation,
        on_fragment: Optional[FragmentCallback] = None,
    ) -> str:
        """
        Send a conversation to the primary provider.

        Streams through on_fragment when given.
        """
        return await self._session().ask(
            conversation,
            on_fragment,
            correlation_id=create_correlation_id(),
        )

    async def ask_question(
        self,
        question: str,
        context: str = "",
        on_fragment: Optional[FragmentCallback] = None,
    ) -> str:
        """Ask one finance question, optionally with financial background."""
        prompt = self._advisor.build_question_prompt(question, context)
        return await self.ask(Conversation.from_user_text(prompt), on_fragment)

    async def analyze_financial_data(self, snapshot: FinancialSnapshot) -> str:
        """Ask for an analysis of the user's numbers (non-streaming)."""
        prompt = self._advisor.build_analysis_prompt(snapshot)
        return await self.ask(Conversation.from_user_text(prompt))

    async def reply(
        self,
        question: str,
        on_fragment: Optional[FragmentCallback] = None,
        snapshot: Optional[FinancialSnapshot] = None,
    ) -> str:
        """
        Chat entry point.

        Configured: the question goes to the provider with context.
        Unconfigured: a canned answer, streamed the same way.
        """
        if self.is_configured():
            context = self._advisor.build_context(snapshot) if snapshot else ""
            return await self.ask_question(question, context, on_fragment)

        correlation_id = create_correlation_id()
        answer = await self._canned.reply(question, on_fragment, snapshot)
        await self._audit.log_fallback_reply(len(answer), correlation_id)
        return answer

    # -------------------------------------------------------------------------
    # Images and extraction
    # -------------------------------------------------------------------------

    async def recognize_image(
        self,
        base64_image: Union[str, ImageAttachment],
        prompt: Optional[str] = None,
    ) -> str:
        """Recognize the text in a receipt or bill image."""
        return await self._vision_router().route_image(
            self._store.load(),
            self._store.load_vision(),
            base64_image,
            prompt,
            correlation_id=create_correlation_id(),
        )

    async def extract_transactions(
        self,
        text: str,
        categories: list[CanonicalCategory],
    ) -> list[TransactionCandidate]:
        """
        Propose transactions found in free text.

        An empty list means nothing was recognized.
        """
        return await self._extractor().extract(
            text, categories, correlation_id=create_correlation_id()
        )

    async def import_from_image(
        self,
        base64_image: Union[str, ImageAttachment],
        categories: list[CanonicalCategory],
    ) -> list[TransactionCandidate]:
        """Recognize an image, then extract transactions from its text."""
        correlation_id = create_correlation_id()
        text = await self._vision_router().route_image(
            self._store.load(),
            self._store.load_vision(),
            base64_image,
            correlation_id=correlation_id,
        )
        return await self._extractor().extract(
            text, categories, correlation_id=correlation_id
        )

    # -------------------------------------------------------------------------
    # Configuration and usage
    # -------------------------------------------------------------------------

    async def update_config(self, partial: dict[str, Any]) -> list[str]:
        """
        Merge and persist a partial configuration record.

        Returns the record keys that changed.
        """
        changed = self._store.update(partial)
        if changed:
            self._store.persist()
        await self._audit.log_config_updated(self._store.load().provider, changed)
        return changed

    def get_config(self) -> dict[str, Any]:
        """Current configuration with credentials masked."""
        return self._store.public_view()

    def get_usage_stats(self) -> dict[str, int]:
        stats = self._store.stats()
        return {"monthly": stats.monthly, "total": stats.total}

    def is_configured(self) -> bool:
        return self._store.load().is_usable

    async def test_connection(self) -> bool:
        """
        Short round trip to the primary provider.

        Raises:
            InvalidConfig: No credential configured
            ProviderError: The provider rejected the call
        """
        if not self._store.load().api_key:
            raise InvalidConfig("Configure an API key first")
        await self.ask_question(CONNECTION_TEST_QUESTION)
        return True


def create_gateway(
    storage: Optional[ConfigStorageInterface] = None,
    settings: Optional[Settings] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    client_factory: Optional[ClientFactory] = None,
) -> AIGateway:
    """
    Factory function to create a fully wired gateway.

    Args:
        storage: Where the configuration record lives.
                 If None, configuration comes from settings and is not persisted.
        settings: Defaults; read from the environment if None
        audit_storage: Optional audit sink
        client_factory: Builds the httpx client (tests pass a mock transport)
    """
    settings = settings or get_settings()
    return AIGateway(
        store=ConfigStore(storage, settings),
        transport=Transport.from_settings(settings.transport, client_factory),
        settings=settings,
        audit_logger=AuditLogger(audit_storage),
    )
