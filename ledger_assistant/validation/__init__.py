"""Validation of model-proposed transactions."""

from ledger_assistant.validation.categories import CATEGORY_SYNONYMS, map_category_name
from ledger_assistant.validation.validator import (
    CandidateValidator,
    coerce_amount,
    coerce_confidence,
    coerce_date,
)

__all__ = [
    "CATEGORY_SYNONYMS",
    "CandidateValidator",
    "coerce_amount",
    "coerce_confidence",
    "coerce_date",
    "map_category_name",
]
