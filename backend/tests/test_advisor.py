"""Tests for the AI advisor service (no real model calls)."""

import pytest

from assistant.advisor import (
    ADVICE_FALLBACK_MESSAGE,
    CHAT_FALLBACK_MESSAGE,
    FinanceAdvisor,
    format_currency,
)
from assistant.conversation_store import InMemoryConversationStore
from assistant.schemas import FinancialSnapshot
from llm_providers import LLMProviderError, ResponseShapeError

from conftest import FakeLLM

CURRENT = FinancialSnapshot(
    month=5,
    budget=1000.0,
    total_expenses=1200.0,
    expense_details=[("Food", 900.0), ("Transportation", 300.0)],
)
PREVIOUS = FinancialSnapshot(
    month=4, budget=1000.0, total_expenses=400.0, expense_details=[("Food", 400.0)]
)
EMPTY = FinancialSnapshot(month=5)


def _advice_handler(report="## Assessment\nYou are over budget.", insight=None):
    insight = insight or '{"topSavingCategory": "Transportation", "topSpendingCategory": "Food"}'

    def handler(kind, prompt):
        if "topSavingCategory" in prompt:
            return insight
        return report

    return handler


class TestReceiptExtraction:

    def test_extracts_items(self):
        llm = FakeLLM(
            responses=[
                '```json\n{"expenses": [{"amount": 120000, "currency": "VND", "category": "food"}]}\n```'
            ]
        )
        items = FinanceAdvisor(llm).extract_expense_from_receipt(b"img", mime_type="image/png")

        assert len(items) == 1
        assert items[0].amount == 120000
        assert items[0].currency == "vnd"
        assert items[0].category == "Food"
        assert llm.calls[0][0] == "vision"

    def test_extra_prompt_is_forwarded(self):
        llm = FakeLLM(responses=['{"expenses": []}'])
        FinanceAdvisor(llm).extract_expense_from_receipt(b"img", "only the tip")
        assert "only the tip" in llm.calls[0][1]

    def test_invalid_item_fails_the_whole_call(self):
        bad = '{"expenses": [{"amount": 5, "currency": "usd", "category": "Food"}, {"amount": 1, "currency": "gbp"}]}'
        llm = FakeLLM(responses=[bad, bad])

        with pytest.raises(ResponseShapeError):
            FinanceAdvisor(llm).extract_expense_from_receipt(b"img")

    def test_provider_error_propagates(self):
        llm = FakeLLM(responses=[LLMProviderError("down")])
        with pytest.raises(LLMProviderError):
            FinanceAdvisor(llm).extract_expense_from_receipt(b"img")


class TestBudgetAdvice:

    def test_combines_report_and_insight(self):
        llm = FakeLLM(handler=_advice_handler())
        advice = FinanceAdvisor(llm).generate_budget_advice(CURRENT, PREVIOUS)

        assert advice.report.startswith("## Assessment")
        assert advice.top_saving_category == "Transportation"
        assert advice.top_spending_category == "Food"
        assert len(llm.calls) == 2

    def test_report_failure_falls_back(self):
        llm = FakeLLM(handler=_advice_handler(report=LLMProviderError("timeout")))
        advice = FinanceAdvisor(llm).generate_budget_advice(CURRENT, PREVIOUS)

        assert advice.report == ADVICE_FALLBACK_MESSAGE
        assert advice.top_saving_category == "None"
        assert advice.top_spending_category == "None"

    def test_unrepairable_insight_falls_back(self):
        llm = FakeLLM(handler=_advice_handler(insight="I think Food, probably."))
        advice = FinanceAdvisor(llm).generate_budget_advice(CURRENT, PREVIOUS)

        assert advice.report == ADVICE_FALLBACK_MESSAGE
        assert advice.top_spending_category == "None"

    def test_no_expenses_gives_none_categories(self):
        llm = FakeLLM(handler=_advice_handler(report="Nothing spent yet."))
        advice = FinanceAdvisor(llm).generate_budget_advice(EMPTY, EMPTY)

        assert advice.report == "Nothing spent yet."
        assert advice.top_saving_category == "None"
        assert advice.top_spending_category == "None"
        assert len(llm.calls) == 1

    def test_to_response_keys(self):
        llm = FakeLLM(handler=_advice_handler())
        body = FinanceAdvisor(llm).generate_budget_advice(CURRENT, PREVIOUS).to_response()
        assert set(body) == {"financialAdviceReport", "topSavingCategory", "topSpendingCategory"}


class TestChat:

    def test_system_prompt_carries_the_numbers(self):
        llm = FakeLLM(responses=["Cut back on food."])
        answer = FinanceAdvisor(llm).answer_financial_question(CURRENT, "1:42", "How am I doing?")

        assert answer == "Cut back on food."
        messages = llm.calls[0][1]
        system = messages[0]["content"]
        assert messages[0]["role"] == "system"
        assert "Monthly Budget: $1,000.00" in system
        assert "Total Expenses This Month: $1,200.00" in system
        assert "Remaining Budget: -$200.00" in system
        assert "Food: $900.00" in system
        assert "100 words" in system
        assert messages[-1] == {"role": "user", "content": "How am I doing?"}

    def test_history_is_kept_per_thread(self):
        store = InMemoryConversationStore()
        llm = FakeLLM(responses=["first", "second", "other"])
        advisor = FinanceAdvisor(llm, store)

        advisor.answer_financial_question(CURRENT, "t1", "hello")
        advisor.answer_financial_question(CURRENT, "t1", "and now?")
        advisor.answer_financial_question(CURRENT, "t2", "hi")

        second_call = llm.calls[1][1]
        assert [m["content"] for m in second_call[1:]] == ["hello", "first", "and now?"]
        assert len(store.get("t1")) == 4
        assert len(store.get("t2")) == 2

    def test_injected_empty_store_is_used(self):
        store = InMemoryConversationStore()
        advisor = FinanceAdvisor(FakeLLM(responses=["ok"]), store)

        assert advisor.conversations is store
        advisor.answer_financial_question(CURRENT, "t1", "hello")
        assert store.get("t1") == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "ok"},
        ]

    def test_failure_returns_apology_and_keeps_history(self):
        store = InMemoryConversationStore()
        llm = FakeLLM(responses=["first answer", LLMProviderError("boom")])
        advisor = FinanceAdvisor(llm, store)

        advisor.answer_financial_question(CURRENT, "t1", "hello")
        answer = advisor.answer_financial_question(CURRENT, "t1", "and now?")

        assert answer == CHAT_FALLBACK_MESSAGE
        assert [m["content"] for m in store.get("t1")] == ["hello", "first answer"]


class TestWeather:

    def test_weather_report(self):
        llm = FakeLLM(
            responses=['{"main": "Clear", "description": "clear sky", "temp": 25, "humidity": 60, "windSpeed": 3.5}']
        )
        report = FinanceAdvisor(llm).generate_weather()
        assert report.model_dump(by_alias=True) == {
            "main": "Clear",
            "description": "clear sky",
            "temp": 25.0,
            "humidity": 60.0,
            "windSpeed": 3.5,
        }


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-20) == "-$20.00"
