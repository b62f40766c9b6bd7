"""
AI advisor: every feature that needs the language model goes through here.

One FinanceAdvisor is built at startup (see app.create_app) and shared by all
requests. Structured answers are always decoded with decode_or_repair; the
advice and chat features degrade to canned text instead of raising.
"""
from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Mapping, Optional

import structlog

from llm_providers import LLMClient
from models.expense_model import EXPENSE_CATEGORIES

from .conversation_store import ConversationStore, InMemoryConversationStore
from .json_repair import decode_or_repair
from .schemas import (
    BudgetAdvice,
    CategoryInsight,
    ExpenseItem,
    FinancialSnapshot,
    ReceiptExtraction,
    WeatherReport,
)

logger = structlog.get_logger(__name__)

ADVICE_FALLBACK_MESSAGE = (
    "Sorry, I couldn't generate financial advice for you right now. Please try again later."
)
CHAT_FALLBACK_MESSAGE = "Sorry, I couldn't find any advice for you. Please try again later."
NO_CATEGORY = "None"

_CATEGORY_LIST = ", ".join(EXPENSE_CATEGORIES)

RECEIPT_INSTRUCTIONS = (
    "Extract the expenses shown on this receipt or invoice.\n"
    "Return a JSON object of the form "
    '{"expenses": [{"amount": 12.5, "currency": "usd", "category": "Food"}]}\n'
    "- amount: the total amount paid, as a plain number without thousands separators\n"
    '- currency: one of "vnd", "usd", "eur"\n'
    f"- category: one of {_CATEGORY_LIST}\n"
    "Return ONLY the JSON object."
)

CATEGORY_INSIGHT_INSTRUCTIONS = (
    "Using the spending data, name the category with the lowest spending this month "
    "(topSavingCategory) and the category with the highest spending this month "
    "(topSpendingCategory). Return ONLY a JSON object of the form "
    '{"topSavingCategory": "Food", "topSpendingCategory": "Housing"}.'
)

WEATHER_INSTRUCTIONS = (
    "Invent a plausible current weather report for a mid-sized city. Return ONLY a JSON "
    'object of the form {"main": "Clouds", "description": "scattered clouds", '
    '"temp": 24.5, "humidity": 70, "windSpeed": 3.2}. temp is in Celsius, humidity '
    "in percent and windSpeed in metres per second."
)


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _snapshot_json(snapshot: FinancialSnapshot) -> str:
    return json.dumps(snapshot.as_prompt_data())


class FinanceAdvisor:
    def __init__(
        self,
        llm: LLMClient,
        conversations: Optional[ConversationStore] = None,
    ):
        self.llm = llm
        # an empty store is falsy, so test against None
        if conversations is None:
            conversations = InMemoryConversationStore()
        self.conversations = conversations

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FinanceAdvisor":
        return cls(LLMClient.from_config(config), InMemoryConversationStore())

    # -----------------------------------------------------------------------
    # Receipts
    # -----------------------------------------------------------------------

    def extract_expense_from_receipt(
        self,
        image_bytes: bytes,
        prompt: Optional[str] = None,
        *,
        mime_type: str = "image/jpeg",
    ) -> List[ExpenseItem]:
        """
        Read expense items off a receipt photo.

        Raises LLMProviderError when the model can't be reached and
        ResponseShapeError when its answer can't be decoded, even after repair.
        """
        instructions = RECEIPT_INSTRUCTIONS
        if prompt:
            instructions = f"{instructions}\nAdditional instructions: {prompt}"

        raw = self.llm.complete_vision(image_bytes, instructions, mime_type=mime_type)
        extraction = decode_or_repair(raw, ReceiptExtraction, self.llm, RECEIPT_INSTRUCTIONS)
        logger.info("receipt_extracted", items=len(extraction.expenses))
        return extraction.expenses

    # -----------------------------------------------------------------------
    # Budget advice
    # -----------------------------------------------------------------------

    def budget_report(
        self,
        current: FinancialSnapshot,
        previous: FinancialSnapshot,
        extra_prompt: Optional[str] = None,
    ) -> str:
        """Markdown commentary on this month's spending. Raises on provider failure."""
        prompt = (
            "You are a personal finance advisor. Write a short markdown report with three "
            "sections:\n"
            "1. **Assessment** of this month's spending against the budget\n"
            "2. **Cost-cutting advice** with concrete measures per category\n"
            "3. **Month-over-month comparison** with the previous month\n"
            "Amounts are in USD. Do not invent numbers that are not in the data.\n\n"
            f"THIS MONTH: {_snapshot_json(current)}\n"
            f"PREVIOUS MONTH: {_snapshot_json(previous)}\n"
        )
        if extra_prompt:
            prompt += f"\nThe user also asks: {extra_prompt}\n"
        return self.llm.complete_text(prompt, temperature=0.3)

    def category_insight(
        self, current: FinancialSnapshot, previous: FinancialSnapshot
    ) -> CategoryInsight:
        if not current.expense_details:
            return CategoryInsight(top_saving_category=NO_CATEGORY, top_spending_category=NO_CATEGORY)

        prompt = (
            f"{CATEGORY_INSIGHT_INSTRUCTIONS}\n\n"
            f"THIS MONTH: {_snapshot_json(current)}\n"
            f"PREVIOUS MONTH: {_snapshot_json(previous)}\n"
        )
        raw = self.llm.complete_text(prompt)
        return decode_or_repair(raw, CategoryInsight, self.llm, CATEGORY_INSIGHT_INSTRUCTIONS)

    def generate_budget_advice(
        self, current: FinancialSnapshot, previous: FinancialSnapshot
    ) -> BudgetAdvice:
        """
        Report + category insight, fetched concurrently. If either call fails
        the whole result is replaced by the fallback advice.
        """
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                report_future = pool.submit(self.budget_report, current, previous)
                insight_future = pool.submit(self.category_insight, current, previous)
                report = report_future.result()
                insight = insight_future.result()
        except Exception as e:
            logger.warning("budget_advice_failed", error=str(e))
            return BudgetAdvice(
                report=ADVICE_FALLBACK_MESSAGE,
                top_saving_category=NO_CATEGORY,
                top_spending_category=NO_CATEGORY,
            )

        return BudgetAdvice(
            report=report,
            top_saving_category=insight.top_saving_category,
            top_spending_category=insight.top_spending_category,
        )

    # -----------------------------------------------------------------------
    # Chat
    # -----------------------------------------------------------------------

    def _chat_system_prompt(self, snapshot: FinancialSnapshot) -> str:
        breakdown = "\n".join(
            f"{category}: {format_currency(amount)}" for category, amount in snapshot.expense_details
        ) or "No expenses recorded yet."
        return (
            "You are a financial expert that helps the user with their financial goals.\n"
            "You are given the user's current financial data and give advice on how to save money. "
            "You may ask the user questions about their financial data.\n"
            "---\n"
            "Current financial data:\n"
            f"Monthly Budget: {format_currency(snapshot.budget)}\n"
            f"Total Expenses This Month: {format_currency(snapshot.total_expenses)}\n"
            f"Remaining Budget: {format_currency(snapshot.remaining)}\n\n"
            f"Expense Breakdown:\n{breakdown}\n"
            "---\n"
            "Respond concisely, under 100 words.\n"
            "Always acknowledge the user's current budget and expenses in your responses.\n"
            "If the budget is exceeded, give specific advice on reducing expenses."
        )

    def answer_financial_question(
        self, snapshot: FinancialSnapshot, thread_id: str, question: str
    ) -> str:
        try:
            history = self.conversations.get(thread_id) or []
            user_message = {"role": "user", "content": question}
            messages = [{"role": "system", "content": self._chat_system_prompt(snapshot)}]
            messages += history + [user_message]

            answer = self.llm.chat(messages)

            self.conversations.set(
                thread_id, history + [user_message, {"role": "assistant", "content": answer}]
            )
            logger.info("chat_answered", thread_id=thread_id, turns=len(history) // 2 + 1)
            return answer
        except Exception as e:
            logger.warning("chat_failed", thread_id=thread_id, error=str(e))
            return CHAT_FALLBACK_MESSAGE

    # -----------------------------------------------------------------------
    # Weather stub
    # -----------------------------------------------------------------------

    def generate_weather(self) -> WeatherReport:
        raw = self.llm.complete_text(WEATHER_INSTRUCTIONS, temperature=0.7)
        return decode_or_repair(raw, WeatherReport, self.llm, WEATHER_INSTRUCTIONS)
