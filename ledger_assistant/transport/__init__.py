"""Transport package: HTTP calls and event-stream decoding."""

from ledger_assistant.transport.client import ClientFactory, Transport
from ledger_assistant.transport.stream import (
    END_OF_STREAM,
    TextResult,
    decode_event_stream,
    fragments_from_frames,
    parse_frame,
    simulate_stream,
)

__all__ = [
    "ClientFactory",
    "END_OF_STREAM",
    "TextResult",
    "Transport",
    "decode_event_stream",
    "fragments_from_frames",
    "parse_frame",
    "simulate_stream",
]
