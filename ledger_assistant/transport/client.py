"""
HTTP Transport using httpx

DESIGN DECISION: One AsyncClient per call.
The gateway makes one outbound request per operation, so there is
no pool to share and nothing to clean up between calls.

RETRY POLICY: none by default. `max_attempts` > 1 opts in to
retries of the non-streaming path for transport errors, 429 and 5xx.
Streaming calls are never retried (fragments may already be delivered).
"""

from typing import Any, AsyncIterator, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ledger_assistant.config.settings import TransportSettings, get_settings
from ledger_assistant.errors import ProviderError, StreamDecodeError
from ledger_assistant.models.gateway import (
    ProviderProfile,
    ProviderRequest,
    StreamFragment,
)
from ledger_assistant.providers.normalizer import error_message, extract
from ledger_assistant.transport.stream import (
    TextResult,
    decode_event_stream,
    fragments_from_frames,
)


ClientFactory = Callable[[], httpx.AsyncClient]


def _error_detail(response: httpx.Response) -> str:
    """Provider's error message if the body is an error envelope, else raw body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase or "unknown_error"
    return error_message(payload) or response.text.strip() or "unknown_error"


def _is_json_body(response: httpx.Response) -> bool:
    return "json" in response.headers.get("content-type", "").lower()


def _envelope_text(profile: ProviderProfile, response: httpx.Response) -> str:
    """Answer text of a whole JSON body, raising on error envelopes."""
    try:
        envelope = response.json()
    except ValueError:
        raise ProviderError(
            response.status_code,
            response.text.strip() or "Provider returned an empty body",
        ) from None
    reported = error_message(envelope)
    if reported is not None:
        raise ProviderError(response.status_code, reported)
    return extract(profile, envelope)


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, ProviderError) and error.status is not None:
        return error.status == 429 or error.status >= 500
    return False


class Transport:
    """
    Issues provider requests.

    Non-streaming: one round trip, JSON envelope normalized to text.
    Streaming: frames decoded incrementally; each fragment reaches
    the consumer before the next network read.
    """

    def __init__(
        self,
        timeout_seconds: float = 60.0,
        max_attempts: int = 1,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._timeout = httpx.Timeout(timeout_seconds)
        self._max_attempts = max(1, max_attempts)
        self._client_factory = client_factory or self._default_client

    @classmethod
    def from_settings(
        cls,
        settings: Optional[TransportSettings] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> 'Transport':
        settings = settings or get_settings().transport
        return cls(
            timeout_seconds=settings.request_timeout_seconds,
            max_attempts=settings.max_attempts,
            client_factory=client_factory,
        )

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout)

    async def send(
        self,
        profile: ProviderProfile,
        request: ProviderRequest,
    ) -> TextResult:
        """
        Send a formatted request.

        Raises:
            ProviderError: Non-2xx status or provider-reported failure
            httpx.TransportError: Network failure on the non-streaming path
        """
        if request.stream:
            return TextResult.streamed(
                self.stream_fragments(profile, request)
            )
        envelope = await self.post_json(request)
        return TextResult.final(extract(profile, envelope))

    async def post_json(self, request: ProviderRequest) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._post_once(request)

    async def _post_once(self, request: ProviderRequest) -> Any:
        async with self._client_factory() as client:
            response = await client.post(
                request.url,
                headers=request.headers,
                content=request.encoded_body(),
            )

        if not response.is_success:
            raise ProviderError(response.status_code, _error_detail(response))
        try:
            return response.json()
        except ValueError:
            raise ProviderError(
                response.status_code,
                response.text.strip() or "Provider returned an empty body",
            ) from None

    async def stream_fragments(
        self,
        profile: ProviderProfile,
        request: ProviderRequest,
    ) -> AsyncIterator[StreamFragment]:
        """
        Yield fragments of a streaming response.

        A provider may answer a streaming request with a plain JSON
        body instead of an event stream. That body goes through the
        same error and envelope checks as a non-streaming reply and
        arrives as a single fragment.

        Raises:
            ProviderError: Non-2xx status or provider-reported failure
            StreamDecodeError: Connection or read failure mid-stream
        """
        try:
            async with self._client_factory() as client:
                async with client.stream(
                    "POST",
                    request.url,
                    headers=request.headers,
                    content=request.encoded_body(),
                ) as response:
                    if not response.is_success:
                        await response.aread()
                        raise ProviderError(response.status_code, _error_detail(response))

                    if _is_json_body(response):
                        await response.aread()
                        text = _envelope_text(profile, response)
                        if text:
                            yield StreamFragment(delta=text, text=text)
                        return

                    frames = decode_event_stream(response.aiter_lines())
                    async for fragment in fragments_from_frames(profile, frames):
                        yield fragment
        except httpx.RequestError as e:
            raise StreamDecodeError(
                f"Stream from {request.log_url} failed: {e}"
            ) from e
