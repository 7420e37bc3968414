"""
Agents Package

CRITICAL BOUNDARIES:
- Sessions send what they are given; they never invent context
- The extractor PROPOSES candidates; it never saves them
- The vision router never changes which provider is primary
"""

from ledger_assistant.agents.advisor import CannedResponder, FinancialAdvisor
from ledger_assistant.agents.extraction import (
    TransactionExtractor,
    build_extraction_prompt,
    locate_payload,
    parse_payload,
)
from ledger_assistant.agents.session import ConversationalSession, consume_fragments
from ledger_assistant.agents.vision import RECOGNITION_PROMPT, VisionRouter

__all__ = [
    "CannedResponder",
    "ConversationalSession",
    "FinancialAdvisor",
    "RECOGNITION_PROMPT",
    "TransactionExtractor",
    "VisionRouter",
    "build_extraction_prompt",
    "consume_fragments",
    "locate_payload",
    "parse_payload",
]
