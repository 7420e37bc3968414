"""
Financial Advisor Prompts and Canned Replies

FinancialAdvisor:
- Builds the analysis prompt from a FinancialSnapshot
- Wraps a user question with optional financial context
- The model only ever SEES the numbers; it never computes them

CannedResponder:
- Degraded mode for when no provider is configured
- Fixed answers matched by phrase, then by keyword
- Delivered through the same fragment contract as a real stream
"""

from decimal import Decimal
from typing import Optional

from ledger_assistant.agents.session import FragmentCallback, consume_fragments
from ledger_assistant.models.transaction import FinancialSnapshot
from ledger_assistant.transport import simulate_stream


def _money(amount: Decimal) -> str:
    return f"¥{amount:,.2f}"


def savings_rate(income: Decimal, expense: Decimal) -> Decimal:
    """Balance as a percentage of income (0 when there is no income)."""
    if income <= 0:
        return Decimal("0")
    return ((income - expense) / income * 100).quantize(Decimal("0.1"))


class FinancialAdvisor:
    """Builds the prompts for analysis and question answering."""

    def build_analysis_prompt(self, snapshot: FinancialSnapshot) -> str:
        income = snapshot.total_income
        expense = snapshot.total_expense
        balance = income - expense

        by_category = snapshot.expense_by_category()
        category_lines = [
            f"- {name}: {_money(amount)}" for name, amount in by_category.items()
        ] or ["- No expenses recorded"]

        budget_lines = []
        for budget in snapshot.budgets:
            spent = snapshot.budget_spent(budget)
            usage = (spent / budget.amount * 100).quantize(Decimal("0.1"))
            budget_lines.append(
                f"- {budget.name}: {usage}% used "
                f"({_money(spent)}/{_money(budget.amount)})"
            )
        if not budget_lines:
            budget_lines = ["- No budgets set"]

        return "\n".join([
            "As a professional financial advisor, analyse the following "
            "financial data and give personalised advice:",
            "",
            "Overview:",
            f"- Total income: {_money(income)}",
            f"- Total expense: {_money(expense)}",
            f"- Net balance: {_money(balance)}",
            f"- Savings rate: {savings_rate(income, expense)}%",
            "",
            "Expense by category:",
            *category_lines,
            "",
            "Budgets:",
            *budget_lines,
            "",
            "Please provide:",
            "1. An overall assessment of the financial situation",
            "2. An analysis of the spending structure",
            "3. Concrete suggestions for improvement",
            "4. Savings and investment advice",
            "",
            "Keep the answer concise and practical, focused on actionable advice.",
        ])

    def build_question_prompt(self, question: str, context: str = "") -> str:
        if context:
            return f"Financial background:\n{context}\n\nUser question: {question}"
        return f"User finance question: {question}"

    def build_context(self, snapshot: FinancialSnapshot) -> str:
        """Short context block sent with chat questions."""
        return "\n".join([
            "Overview:",
            f"- Total income: {_money(snapshot.total_income)}",
            f"- Total expense: {_money(snapshot.total_expense)}",
            f"- Transactions: {len(snapshot.transactions)}",
            f"- Categories: {len(snapshot.categories)}",
            f"- Budgets: {len(snapshot.budgets)}",
        ])


UNKNOWN_REPLY = (
    "I'm not sure how to answer that. Configure an AI provider in "
    "settings to get smarter answers."
)

PREDEFINED_ANSWERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("how to save more money", "如何节省更多钱"),
        "Ways to save more money:\n\n"
        "1. Make a detailed budget and stick to it\n"
        "2. Cut non-essential spending; separate needs from wants\n"
        "3. Save automatically with a standing transfer to savings\n"
        "4. Compare prices and look for discounts\n"
        "5. Cancel subscriptions you rarely use\n"
        "6. Consider buying second-hand",
    ),
    (
        ("how to start investing", "如何开始投资"),
        "Steps to start investing:\n\n"
        "1. Build an emergency fund (3-6 months of expenses)\n"
        "2. Learn the basics of stocks, bonds and funds\n"
        "3. Assess your risk tolerance\n"
        "4. Pick a platform or talk to an adviser\n"
        "5. Start small and increase gradually\n"
        "6. Stay long term and avoid frequent trading",
    ),
    (
        ("how to make a budget", "如何制定预算"),
        "Steps to make a budget:\n\n"
        "1. Work out your total after-tax income\n"
        "2. Track every expense\n"
        "3. Separate essential and non-essential spending\n"
        "4. Use the 50/30/20 rule: 50% needs, 30% wants, 20% savings\n"
        "5. Set a limit for each category\n"
        "6. Review and adjust regularly",
    ),
)

KEYWORD_ANSWERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("budget", "预算"),
        "Why budgets matter\n\n"
        "A budget is the key to managing money. Try the 50/30/20 rule:\n"
        "- 50% for needs\n- 30% for wants\n- 20% for savings and investment",
    ),
    (
        ("saving", "savings", "储蓄"),
        "Ways to grow your savings\n\n"
        "Move part of every paycheck to a dedicated savings account "
        "automatically. Aim to save at least 20% of income, split across an "
        "emergency fund, short-term goals and long-term investment.",
    ),
    (
        ("invest", "投资"),
        "Getting started with investing\n\n"
        "Build an emergency fund first. Low-cost index funds are a good "
        "start for beginners. Diversify, hold for the long term and invest "
        "a fixed amount regularly.",
    ),
)

ANALYSIS_KEYWORDS = ("analysis", "analyse", "analyze", "data", "分析", "数据")


class CannedResponder:
    """
    Answers questions without any provider.

    Keyword answers take precedence over phrase answers.
    """

    def __init__(self, delay_seconds: float = 0.0):
        self._delay = delay_seconds

    def answer(
        self,
        question: str,
        snapshot: Optional[FinancialSnapshot] = None,
    ) -> str:
        text = question.lower()

        reply = UNKNOWN_REPLY
        for phrases, answer in PREDEFINED_ANSWERS:
            if any(phrase in text for phrase in phrases):
                reply = answer
                break

        for keywords, answer in KEYWORD_ANSWERS:
            if any(keyword in text for keyword in keywords):
                return answer

        if any(keyword in text for keyword in ANALYSIS_KEYWORDS):
            return self._local_analysis(snapshot)
        return reply

    def _local_analysis(self, snapshot: Optional[FinancialSnapshot]) -> str:
        if snapshot is None or not snapshot.transactions:
            return (
                "Your financial analysis\n\n"
                "There are no transactions yet. Record some income and "
                "expenses to see an analysis."
            )
        income = snapshot.total_income
        expense = snapshot.total_expense
        rate = savings_rate(income, expense)
        advice = (
            "Your savings rate is healthy." if rate >= 20
            else "Try to keep spending below 80% of income."
        )
        return (
            "Your financial analysis\n\n"
            f"Income {_money(income)}, expense {_money(expense)}, "
            f"savings rate {rate}%. {advice}\n\n"
            "Review your numbers regularly and adjust spending as needed."
        )

    async def reply(
        self,
        question: str,
        on_fragment: Optional[FragmentCallback] = None,
        snapshot: Optional[FinancialSnapshot] = None,
    ) -> str:
        """
        Stream the canned answer character by character.

        Raises:
            CallbackError: on_fragment raised; delivery stopped
        """
        answer = self.answer(question, snapshot)
        if on_fragment is None:
            return answer
        text, _ = await consume_fragments(
            simulate_stream(answer, self._delay), on_fragment
        )
        return text
