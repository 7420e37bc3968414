"""
Structured Extraction Pipeline

Turns free text (typed by the user, or recognized from a receipt image)
into TransactionCandidates.

TWO STAGES:
1. LOCATE: find the structured payload inside the model's answer.
   A fenced block wins, whatever its language tag. Otherwise the
   first balanced object or array literal that is valid JSON.
2. PARSE: strict JSON. If it does not parse, the whole extraction
   fails with ExtractionParseError. Nothing is guessed.

After parsing, every element is validated on its own
(see ledger_assistant.validation). Bad elements are dropped;
an empty result is a valid answer ("nothing recognized").

CRITICAL: Candidates are PROPOSALS. Nothing here persists anything.
"""

import json
import re
from typing import Any, Optional
from uuid import UUID

import structlog

from ledger_assistant.agents.session import ConversationalSession
from ledger_assistant.audit import AuditLogger
from ledger_assistant.errors import ExtractionParseError
from ledger_assistant.models.gateway import Conversation
from ledger_assistant.models.transaction import CanonicalCategory, TransactionCandidate
from ledger_assistant.validation import CandidateValidator


logger = structlog.get_logger(__name__)

_FENCED_BLOCK = re.compile(r"```[ \t]*[\w.+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}


EXTRACTION_PROMPT = """Analyse the text below and extract every transaction in it.
It may be a shopping receipt, a bill, a bank notification or a note typed by the user.
For each transaction identify:
1. Type (income or expense)
2. Amount
3. Merchant or counterparty
4. Date, if present
5. Category, choosing from: {categories}

Text:
{source_text}

Respond with JSON only, in exactly this shape:
{{
  "transactions": [
    {{
      "type": "expense",
      "amount": 0.0,
      "merchant": "merchant name",
      "category": "category name",
      "date": "YYYY-MM-DD",
      "description": "short description",
      "confidence": 0.9
    }}
  ]
}}

"type" is "income" or "expense". "amount" is a positive number.
"confidence" is between 0 and 1.
If no transaction can be recognized, return an empty "transactions" array."""


def build_extraction_prompt(
    source_text: str,
    categories: list[CanonicalCategory],
) -> str:
    names = ", ".join(category.name for category in categories) or "any"
    return EXTRACTION_PROMPT.format(categories=names, source_text=source_text)


def _scan_balanced(text: str, start: int) -> Optional[str]:
    """Return text[start:end] if the literal opened at `start` closes."""
    expected = [_CLOSERS[text[start]]]
    in_string = False
    escaped = False

    for index in range(start + 1, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            expected.append(_CLOSERS[char])
        elif char in "}]":
            if char != expected.pop():
                return None
            if not expected:
                return text[start:index + 1]
    return None


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def locate_payload(answer: str) -> str:
    """
    Find the structured payload inside a model answer.

    Raises:
        ExtractionParseError: If no fenced block or balanced literal exists
    """
    match = _FENCED_BLOCK.search(answer)
    if match and match.group(1).strip():
        return match.group(1).strip()

    first_literal = None
    for index, char in enumerate(answer):
        if char not in _CLOSERS:
            continue
        literal = _scan_balanced(answer, index)
        if literal is None:
            continue
        if _is_json(literal):
            return literal
        if first_literal is None:
            first_literal = literal

    # Nothing parses: hand the first literal on so the JSON error is reported
    if first_literal is not None:
        return first_literal

    raise ExtractionParseError("No structured payload found in the answer", answer)


def parse_payload(payload: str) -> list[Any]:
    """
    Strictly parse a located payload into transaction elements.

    Accepted shapes:
    - {"transactions": [...]}
    - [...]
    - a single transaction object (has an "amount" key)

    Raises:
        ExtractionParseError: Invalid JSON or an unrecognized shape
    """
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ExtractionParseError(
            f"Structured payload is not valid JSON: {e.msg} at position {e.pos}",
            payload,
        ) from e

    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        if "transactions" in value:
            elements = value["transactions"]
            if isinstance(elements, list):
                return elements
            raise ExtractionParseError("'transactions' is not an array", payload)
        if "amount" in value:
            return [value]
    raise ExtractionParseError("Structured payload has no transactions", payload)


class TransactionExtractor:
    """
    Runs the extraction prompt and turns the answer into candidates.

    The session is used non-streaming: the payload is only
    meaningful once the answer is complete.
    """

    def __init__(
        self,
        session: ConversationalSession,
        validator: Optional[CandidateValidator] = None,
        max_source_chars: int = 8000,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session = session
        self._validator = validator or CandidateValidator()
        self._max_source_chars = max_source_chars
        self._audit = audit_logger or AuditLogger()

    async def extract(
        self,
        source_text: str,
        categories: list[CanonicalCategory],
        correlation_id: Optional[UUID] = None,
    ) -> list[TransactionCandidate]:
        """
        Extract transaction candidates from free text.

        Blank text yields no candidates and makes no call.

        Raises:
            ExtractionParseError: The answer has no parsable payload
            InvalidConfig / ProviderError / StreamDecodeError: From the session
        """
        text = (source_text or "").strip()
        if not text:
            return []
        if len(text) > self._max_source_chars:
            logger.info(
                "source_text_truncated",
                original=len(text),
                kept=self._max_source_chars,
            )
            text = text[:self._max_source_chars]

        prompt = build_extraction_prompt(text, categories)
        answer = await self._session.ask(
            Conversation.from_user_text(prompt),
            correlation_id=correlation_id,
        )

        try:
            elements = parse_payload(locate_payload(answer))
        except ExtractionParseError as e:
            await self._audit.log_extraction_failed(e, correlation_id)
            raise

        candidates, dropped = self._validator.validate_all(elements)
        for index, reason in dropped:
            await self._audit.log_candidate_dropped(index, reason, correlation_id)
        await self._audit.log_extraction_completed(
            len(candidates), len(dropped), correlation_id
        )
        return candidates
