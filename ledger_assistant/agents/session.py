"""
Conversational Session

One `ask` = one outbound provider call.

FLOW:
1. Refuse unusable configuration before touching the network
2. Format the request for the active provider
3. Send; stream if a fragment callback was given and the provider can
4. Deliver every fragment to the callback, in order, as it arrives
5. Count the call once it has fully succeeded

Any failure is terminal for the call. There is no partial success:
usage is only recorded after the full text is in hand.
"""

from typing import AsyncIterator, Callable, Optional
from uuid import UUID

import structlog

from ledger_assistant.audit import AuditLogger
from ledger_assistant.errors import CallbackError, InvalidConfig
from ledger_assistant.models.gateway import (
    Conversation,
    GatewayConfig,
    ProviderProfile,
    StreamFragment,
)
from ledger_assistant.providers.formatter import DEFAULT_MAX_TOKENS, format_request
from ledger_assistant.transport import Transport


logger = structlog.get_logger(__name__)

FragmentCallback = Callable[[str, str], None]
UsageRecorder = Callable[[], object]


async def consume_fragments(
    fragments: AsyncIterator[StreamFragment],
    on_fragment: Optional[FragmentCallback],
) -> tuple[str, int]:
    """
    Drain a fragment iterator, invoking the callback per fragment.

    The callback runs before the next fragment is requested.
    If it raises, the iterator is closed and CallbackError is raised.

    Returns: (final text, number of fragments)
    """
    text = ""
    count = 0
    try:
        async for fragment in fragments:
            text = fragment.text
            count += 1
            if on_fragment is None:
                continue
            try:
                on_fragment(fragment.delta, fragment.text)
            except Exception as e:
                raise CallbackError(f"Fragment callback failed: {e}") from e
    finally:
        aclose = getattr(fragments, "aclose", None)
        if aclose is not None:
            await aclose()
    return text, count


class ConversationalSession:
    """
    Runs chat calls against one provider with one configuration.

    Sessions are cheap; the gateway builds one per call so a
    configuration change is picked up by the next call.
    """

    def __init__(
        self,
        profile: ProviderProfile,
        config: GatewayConfig,
        transport: Transport,
        usage_recorder: Optional[UsageRecorder] = None,
        system_prompt: str = "",
        max_tokens: int = DEFAULT_MAX_TOKENS,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._profile = profile
        self._config = config
        self._transport = transport
        self._usage_recorder = usage_recorder
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._audit = audit_logger or AuditLogger()

    @property
    def profile(self) -> ProviderProfile:
        return self._profile

    async def ask(
        self,
        conversation: Conversation,
        on_fragment: Optional[FragmentCallback] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Send the conversation and return the assistant's full text.

        Args:
            conversation: Messages so far; the last user message is the question
            on_fragment: Called as (delta, text_so_far) per streamed fragment.
                         Passing it requests streaming.
            correlation_id: Ties the audit events of one user action together

        Raises:
            InvalidConfig: Disabled or missing credential (no network call made)
            ProviderError: Provider rejected the call
            StreamDecodeError: Stream broke mid-way
            CallbackError: on_fragment raised; the stream was aborted
        """
        if not self._config.enabled:
            raise InvalidConfig("AI features are switched off")
        if not self._config.is_usable:
            raise InvalidConfig(
                f"No API key configured for {self._profile.display_name}"
            )

        request = format_request(
            self._profile,
            self._config,
            conversation,
            self._system_prompt,
            want_streaming=on_fragment is not None,
            max_tokens=self._max_tokens,
        )
        await self._audit.log_call_started(
            provider=self._profile.provider_id,
            model=self._config.model,
            streaming=request.stream,
            correlation_id=correlation_id,
        )
        logger.debug(
            "provider_call",
            provider=self._profile.provider_id,
            url=request.log_url,
            stream=request.stream,
        )

        try:
            result = await self._transport.send(self._profile, request)
            if result.is_streaming:
                text, fragments = await consume_fragments(result.fragments, on_fragment)
            else:
                text, fragments = result.text, 0
        except Exception as e:
            await self._audit.log_call_failed(
                self._profile.provider_id, e, correlation_id
            )
            raise

        if self._usage_recorder is not None:
            self._usage_recorder()
        await self._audit.log_call_completed(
            provider=self._profile.provider_id,
            characters=len(text),
            fragments=fragments,
            correlation_id=correlation_id,
        )
        return text
