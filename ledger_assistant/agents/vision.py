"""
Vision Routing

DESIGN DECISION: Image recognition goes to the PRIMARY provider when it
can read images. Otherwise it is routed to the dedicated vision provider,
if one is enabled. The primary configuration is never touched.

CANNOT:
- Fall back to a text-only provider with the image dropped
- Switch the primary provider, even temporarily
"""

from typing import Optional, Union
from uuid import UUID

from ledger_assistant.agents.session import ConversationalSession, UsageRecorder
from ledger_assistant.audit import AuditLogger
from ledger_assistant.errors import VisionNotConfigured
from ledger_assistant.models.gateway import (
    Conversation,
    GatewayConfig,
    ImageAttachment,
    VisionConfig,
)
from ledger_assistant.providers.formatter import DEFAULT_MAX_TOKENS, format_vision_request
from ledger_assistant.providers.registry import profile
from ledger_assistant.transport import Transport


RECOGNITION_PROMPT = (
    "Transcribe all text visible in this receipt, bill or transaction "
    "screenshot. Keep amounts, dates, merchant names and item lines exactly "
    "as printed, in their original language. Return the text only."
)


def as_attachment(image: Union[str, ImageAttachment]) -> ImageAttachment:
    """Accept bare base64, a data: URI, or an attachment."""
    if isinstance(image, ImageAttachment):
        return image
    return ImageAttachment(data=image)


class VisionRouter:
    """Routes one image recognition request to a vision-capable provider."""

    def __init__(
        self,
        transport: Transport,
        usage_recorder: Optional[UsageRecorder] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transport = transport
        self._usage_recorder = usage_recorder
        self._max_tokens = max_tokens
        self._audit = audit_logger or AuditLogger()

    async def route_image(
        self,
        primary_config: GatewayConfig,
        vision_config: Optional[VisionConfig],
        image: Union[str, ImageAttachment],
        prompt: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Recognize the text in an image.

        Raises:
            VisionNotConfigured: Primary cannot read images and no vision
                                 provider is enabled with a credential
            InvalidConfig: The chosen provider's configuration is unusable
            ProviderError: The provider rejected the call
        """
        attachment = as_attachment(image)
        instruction = prompt or RECOGNITION_PROMPT
        primary = profile(primary_config.provider)

        try:
            if primary.supports_vision:
                await self._audit.log_vision_routed(
                    primary.provider_id, primary.provider_id, True, correlation_id
                )
                session = ConversationalSession(
                    profile=primary,
                    config=primary_config,
                    transport=self._transport,
                    usage_recorder=self._usage_recorder,
                    max_tokens=self._max_tokens,
                    audit_logger=self._audit,
                )
                return await session.ask(
                    Conversation.from_user_text(instruction, [attachment]),
                    correlation_id=correlation_id,
                )

            if vision_config is None or not vision_config.enabled:
                raise VisionNotConfigured(
                    f"{primary.display_name} cannot read images and no vision "
                    f"provider is enabled"
                )
            if not vision_config.api_key:
                raise VisionNotConfigured(
                    "Vision provider is enabled but has no API key"
                )

            return await self._recognize_with(
                primary.provider_id, vision_config, attachment, instruction, correlation_id
            )
        except Exception as e:
            await self._audit.log_vision_failed(primary.provider_id, e, correlation_id)
            raise

    async def _recognize_with(
        self,
        primary_id: str,
        vision_config: VisionConfig,
        image: ImageAttachment,
        instruction: str,
        correlation_id: Optional[UUID],
    ) -> str:
        target = profile(vision_config.provider)
        request = format_vision_request(
            target, vision_config, image, instruction, self._max_tokens
        )
        await self._audit.log_vision_routed(
            primary_id, target.provider_id, False, correlation_id
        )
        await self._audit.log_call_started(
            provider=target.provider_id,
            model=vision_config.model,
            streaming=False,
            correlation_id=correlation_id,
        )
        result = await self._transport.send(target, request)
        text = result.text or ""

        if self._usage_recorder is not None:
            self._usage_recorder()
        await self._audit.log_call_completed(
            provider=target.provider_id,
            characters=len(text),
            fragments=0,
            correlation_id=correlation_id,
        )
        return text
