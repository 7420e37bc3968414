"""
Candidate Validation

DESIGN DECISION: The model's JSON is UNTRUSTED input.
Each element of the transactions array is checked on its own:

DROPPED (the element never becomes a candidate):
- Not a JSON object
- Amount missing, non-numeric, boolean, NaN/inf, or <= 0
- Date present but unparsable

NORMALIZED (the element survives with a fixed-up field):
- type: "income" stays income, anything else is expense
- category: mapped through the synonym table, default "other"
- date: missing date becomes today
- confidence: clamped to [0, 1], default when absent

IMPORTANT: A dropped element is reported with a reason,
never raised. One bad element must not lose the others.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from ledger_assistant.config import get_settings
from ledger_assistant.models.transaction import TransactionCandidate, TransactionType
from ledger_assistant.validation.categories import map_category_name


CENTS = Decimal("0.01")

# Currency symbols and words the model tends to leave on amounts
_CURRENCY_NOISE = re.compile(r"(?i)[¥￥$€£,，\s]|rmb|cny|usd|eur|元|块")

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%Y年%m月%d日")


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    Coerce a model-written amount to a positive Decimal (2 places).

    Returns None when the value cannot be a transaction amount.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = _CURRENCY_NOISE.sub("", value)
        if not cleaned:
            return None
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return None
        if not amount.is_finite():
            return None
    else:
        return None

    try:
        amount = amount.quantize(CENTS)
    except InvalidOperation:
        return None
    if amount <= 0:
        return None
    return amount


def coerce_date(value: Any, today: date) -> Optional[date]:
    """
    Parse a model-written date.

    Missing or blank means today. Returns None if unparsable.
    """
    if value is None:
        return today
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return today

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def coerce_confidence(value: Any, default: float) -> float:
    """Clamp to [0, 1]; non-numeric or missing gives the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    if not math.isfinite(number):
        return default
    return min(1.0, max(0.0, number))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class CandidateValidator:
    """
    Turns raw transaction elements into TransactionCandidates.

    Usage:
        validator = CandidateValidator()
        candidates, dropped = validator.validate_all(elements)
    """

    def __init__(
        self,
        default_confidence: Optional[float] = None,
        today: Callable[[], date] = date.today,
    ):
        if default_confidence is None:
            default_confidence = get_settings().app.default_confidence
        self._default_confidence = default_confidence
        self._today = today

    def validate(self, element: Any) -> tuple[Optional[TransactionCandidate], Optional[str]]:
        """
        Validate one element.

        Returns: (candidate, None) on success, (None, reason) when dropped
        """
        if not isinstance(element, dict):
            return None, "not_an_object"

        amount = coerce_amount(element.get("amount"))
        if amount is None:
            return None, "invalid_amount"

        day = coerce_date(element.get("date"), self._today())
        if day is None:
            return None, "invalid_date"

        raw_type = _text(element.get("type")).lower()
        kind = TransactionType.INCOME if raw_type == "income" else TransactionType.EXPENSE

        label = _text(element.get("category")) or None

        candidate = TransactionCandidate(
            type=kind,
            amount=amount,
            category=map_category_name(label),
            category_label=label,
            merchant=_text(element.get("merchant"))[:200],
            description=_text(element.get("description"))[:500],
            date=day,
            confidence=coerce_confidence(
                element.get("confidence"), self._default_confidence
            ),
        )
        return candidate, None

    def validate_all(
        self,
        elements: list[Any],
    ) -> tuple[list[TransactionCandidate], list[tuple[int, str]]]:
        """
        Validate every element, preserving order.

        Returns: (candidates, [(index, reason) for each dropped element])
        """
        candidates = []
        dropped = []
        for index, element in enumerate(elements):
            candidate, reason = self.validate(element)
            if candidate is None:
                dropped.append((index, reason))
            else:
                candidates.append(candidate)
        return candidates, dropped
