"""
Category Mapping

Maps whatever category name the model wrote onto a canonical
category id. The table is fixed; canonical category names supplied
by the caller are shown to the model in the prompt but are never
used for matching.

Matching is a case-insensitive substring test, in table order.
The first category with a matching synonym wins.
"""

from typing import Optional

from ledger_assistant.models.transaction import OTHER_CATEGORY_ID


CATEGORY_SYNONYMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("food", ("餐饮", "食物", "吃饭", "food", "dining", "restaurant", "meal")),
    ("transport", ("交通", "出行", "transport", "travel", "taxi", "commute")),
    ("shopping", ("购物", "shopping", "retail")),
    ("entertainment", ("娱乐", "entertainment", "movie", "game")),
    ("healthcare", ("医疗", "healthcare", "medical", "health", "pharmacy")),
    ("education", ("教育", "education", "tuition", "course")),
    ("salary", ("工资", "salary", "wage", "payroll")),
    ("investment", ("投资", "investment", "dividend")),
)


def map_category_name(name: Optional[str]) -> str:
    """Return the canonical id for a model-written category name."""
    if not name or not isinstance(name, str):
        return OTHER_CATEGORY_ID

    needle = name.strip().lower()
    if not needle:
        return OTHER_CATEGORY_ID

    for category_id, synonyms in CATEGORY_SYNONYMS:
        if any(synonym in needle for synonym in synonyms):
            return category_id
    return OTHER_CATEGORY_ID
