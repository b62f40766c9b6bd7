"""Tests for JSON extraction and the decode-or-repair step."""

import pytest

from assistant.json_repair import decode, decode_or_repair
from assistant.schemas import CategoryInsight, ReceiptExtraction
from llm_providers import LLMProviderError, ResponseShapeError, extract_json, strip_code_fences

from conftest import FakeLLM

INSTRUCTIONS = 'Return {"topSavingCategory": "...", "topSpendingCategory": "..."}'


class TestExtractJson:

    def test_plain_json(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_json_inside_prose(self):
        assert extract_json('Sure! Here it is: {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}

    def test_bare_array(self):
        assert extract_json("result: [1, 2, 3]") == [1, 2, 3]

    def test_garbage(self):
        assert extract_json("no json here") is None
        assert extract_json("") is None

    def test_strip_code_fences_without_fence(self):
        assert strip_code_fences("  text ") == "text"


class TestDecode:

    def test_decode_fenced_insight(self):
        insight = decode(
            '```json\n{"topSavingCategory": "Food", "topSpendingCategory": "Housing"}\n```',
            CategoryInsight,
        )
        assert insight.top_saving_category == "Food"
        assert insight.top_spending_category == "Housing"

    def test_decode_wraps_bare_receipt_list(self):
        extraction = decode('[{"amount": 3, "currency": "USD", "category": "food"}]', ReceiptExtraction)
        assert extraction.expenses[0].currency == "usd"
        assert extraction.expenses[0].category == "Food"


class TestDecodeOrRepair:

    def test_valid_response_needs_no_repair(self):
        llm = FakeLLM()
        result = decode_or_repair(
            '{"topSavingCategory": "Food", "topSpendingCategory": "Other"}',
            CategoryInsight,
            llm,
            INSTRUCTIONS,
        )
        assert result.top_spending_category == "Other"
        assert llm.calls == []

    def test_malformed_fenced_response_is_repaired(self):
        malformed = "```json\n{'topSavingCategory': 'Food', topSpendingCategory: Housing,}\n```"
        llm = FakeLLM(
            responses=['```json\n{"topSavingCategory": "Food", "topSpendingCategory": "Housing"}\n```']
        )

        result = decode_or_repair(malformed, CategoryInsight, llm, INSTRUCTIONS)

        assert result.top_saving_category == "Food"
        assert result.top_spending_category == "Housing"
        kind, prompt = llm.calls[0]
        assert kind == "text"
        assert INSTRUCTIONS in prompt
        assert malformed in prompt

    def test_wrong_shape_is_repaired(self):
        llm = FakeLLM(responses=['{"expenses": [{"amount": 4, "currency": "eur", "category": "Other"}]}'])
        result = decode_or_repair(
            '{"expenses": [{"amount": 4, "currency": "yen"}]}', ReceiptExtraction, llm, "receipt"
        )
        assert result.expenses[0].currency == "eur"

    def test_unrepairable_response_raises_shape_error(self):
        llm = FakeLLM(responses=["still not json, sorry"])
        with pytest.raises(ResponseShapeError, match="Response validation failed"):
            decode_or_repair("nope", CategoryInsight, llm, INSTRUCTIONS)

    def test_provider_error_during_repair_propagates(self):
        llm = FakeLLM(responses=[LLMProviderError("Groq API rate limit exceeded")])
        with pytest.raises(LLMProviderError, match="rate limit"):
            decode_or_repair("nope", CategoryInsight, llm, INSTRUCTIONS)
        assert len(llm.calls) == 1
