"""
Transaction Models

CRITICAL: A TransactionCandidate is PROPOSED data, NOT a saved transaction.
It only becomes a transaction when the user confirms it and the caller
hands it to the persistence layer.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


OTHER_CATEGORY_ID = "other"


class TransactionType(str, Enum):
    """Direction of money."""
    INCOME = "income"
    EXPENSE = "expense"


class CanonicalCategory(BaseModel):
    """
    An application category.

    `id` is the internal identifier, `name` is what users see
    (and what the model is shown in prompts).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class TransactionCandidate(BaseModel):
    """
    A transaction recognized by the extraction pipeline.

    Invariant: amount is always strictly positive. Elements that
    cannot satisfy this never become candidates.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    candidate_id: UUID = Field(default_factory=uuid4)
    type: TransactionType
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    category: Optional[str] = Field(
        default=None,
        description="Canonical category id (None until mapped)"
    )
    category_label: Optional[str] = Field(
        default=None,
        description="Category name as the model wrote it"
    )
    merchant: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=500)
    date: date
    confidence: float = Field(..., ge=0.0, le=1.0)

    def to_transaction_record(
        self,
        categories: list[CanonicalCategory],
    ) -> dict:
        """
        Shape the candidate for the persistence collaborator.

        Called only after the user confirms.
        """
        names = {category.id: category.name for category in categories}
        note = self.description
        if self.merchant:
            note = f"{note} - {self.merchant}" if note else self.merchant
        now = datetime.now(timezone.utc).isoformat()
        return {
            "type": self.type.value,
            "amount": float(self.amount),
            "category": self.category,
            "categoryName": names.get(self.category, self.category),
            "merchant": self.merchant,
            "description": self.description,
            "note": note.strip(),
            "date": self.date.isoformat(),
            "confidence": self.confidence,
            "isAIGenerated": True,
            "createdAt": now,
            "updatedAt": now,
        }


# =============================================================================
# FINANCIAL SNAPSHOT (input to the advisor prompt)
# =============================================================================

class LedgerEntry(BaseModel):
    """A stored transaction, as read from the persistence layer."""

    type: TransactionType
    amount: Decimal = Field(..., ge=0)
    category: str


class Budget(BaseModel):
    """A spending budget; category 'all' covers every expense."""

    name: str
    amount: Decimal = Field(..., gt=0)
    category: str = "all"


class FinancialSnapshot(BaseModel):
    """Everything the advisor prompt summarizes."""

    transactions: list[LedgerEntry] = Field(default_factory=list)
    categories: list[CanonicalCategory] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)

    @property
    def total_income(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.type == TransactionType.INCOME),
            Decimal("0"),
        )

    @property
    def total_expense(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.type == TransactionType.EXPENSE),
            Decimal("0"),
        )

    def expense_by_category(self) -> dict[str, Decimal]:
        """Expense totals keyed by category display name."""
        names = {category.id: category.name for category in self.categories}
        totals: dict[str, Decimal] = {}
        for entry in self.transactions:
            if entry.type != TransactionType.EXPENSE:
                continue
            label = names.get(entry.category, entry.category)
            totals[label] = totals.get(label, Decimal("0")) + entry.amount
        return totals

    def budget_spent(self, budget: Budget) -> Decimal:
        return sum(
            (
                t.amount for t in self.transactions
                if t.type == TransactionType.EXPENSE
                and (budget.category == "all" or t.category == budget.category)
            ),
            Decimal("0"),
        )
