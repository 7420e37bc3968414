"""
Stream Decoder

Decodes a text/event-stream response into provider frames,
and frames into StreamFragments.

FRAME RULES:
- Blank lines and ":" comment lines are ignored
- Only "data:" lines carry payloads; other fields (event:, id:) are ignored
- "data: [DONE]" ends the stream cleanly
- A payload that is not a JSON object is skipped, never fatal.
  Skipped frames carry no extractable text, so nothing is lost.
"""

import asyncio
import json
from typing import AsyncIterable, AsyncIterator, Optional

import structlog

from ledger_assistant.models.gateway import ProviderProfile, StreamFragment
from ledger_assistant.providers.normalizer import extract_delta


logger = structlog.get_logger(__name__)

DATA_MARKER = "data:"
DONE_SENTINEL = "[DONE]"

END_OF_STREAM = object()


def parse_frame(line: str):
    """
    Parse one line of an event stream.

    Returns:
        A dict payload, None for lines to ignore,
        or END_OF_STREAM for the sentinel
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith(":"):
        return None
    if not line.startswith(DATA_MARKER):
        return None

    payload = line[len(DATA_MARKER):].strip()
    if payload == DONE_SENTINEL:
        return END_OF_STREAM
    if not payload:
        return None

    try:
        value = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("stream_frame_skipped", reason="invalid_json", size=len(payload))
        return None
    if not isinstance(value, dict):
        logger.debug("stream_frame_skipped", reason="not_an_object", size=len(payload))
        return None
    return value


async def decode_event_stream(lines: AsyncIterable[str]) -> AsyncIterator[dict]:
    """Yield each parsed payload as soon as its line arrives."""
    async for line in lines:
        frame = parse_frame(line)
        if frame is END_OF_STREAM:
            return
        if frame is not None:
            yield frame


async def fragments_from_frames(
    profile: ProviderProfile,
    frames: AsyncIterable[dict],
) -> AsyncIterator[StreamFragment]:
    """Turn provider frames into fragments over one running buffer."""
    text = ""
    try:
        async for frame in frames:
            delta = extract_delta(profile, frame)
            if not delta:
                continue
            text += delta
            yield StreamFragment(delta=delta, text=text)
    finally:
        # Closing the frames releases the HTTP response
        aclose = getattr(frames, "aclose", None)
        if aclose is not None:
            await aclose()


async def simulate_stream(
    text: str,
    delay_seconds: float = 0.0,
) -> AsyncIterator[StreamFragment]:
    """
    Deliver a ready-made text character by character.

    Used for canned replies so callers see the same fragment
    contract as a real streaming provider.
    """
    running = ""
    for char in text:
        running += char
        yield StreamFragment(delta=char, text=running)
        if delay_seconds:
            await asyncio.sleep(delay_seconds)


class TextResult:
    """
    Outcome of one transport call.

    Exactly one of `text` (non-streamed final answer) and
    `fragments` (async iterator of StreamFragment) is set.
    """

    def __init__(
        self,
        text: Optional[str] = None,
        fragments: Optional[AsyncIterator[StreamFragment]] = None,
    ):
        if (text is None) == (fragments is None):
            raise ValueError("TextResult needs exactly one of text or fragments")
        self.text = text
        self.fragments = fragments

    @classmethod
    def final(cls, text: str) -> 'TextResult':
        return cls(text=text)

    @classmethod
    def streamed(cls, fragments: AsyncIterator[StreamFragment]) -> 'TextResult':
        return cls(fragments=fragments)

    @property
    def is_streaming(self) -> bool:
        return self.fragments is not None
