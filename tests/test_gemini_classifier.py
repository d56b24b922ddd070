"""Tests for the Gemini classification strategy."""

import json
from unittest.mock import MagicMock

import pytest

from app.services.gemini_classifier import (
    GeminiClassificationError,
    build_prompt,
    classify_with_gemini,
    parse_response,
)
from app.services.keyword_matrix import DEFAULT_MATRIX


def _client_returning(text):
    client = MagicMock()
    response = MagicMock()
    response.text = text
    client.models.generate_content.return_value = response
    return client


VERDICT = {
    "probable_type": "Invoice",
    "confidence_percentage": 92.4,
    "keywords_detected": [
        {"keyword": "INVOICE", "weight": 3, "type": "strong"},
        {"keyword": "Buyer", "weight": 2, "type": "moderate"},
    ],
    "reasoning": "High presence of tax and vendor identifiers.",
}


class TestBuildPrompt:

    def test_lists_every_type_and_tier(self):
        prompt = build_prompt(DEFAULT_MATRIX, "some text")

        for profile in DEFAULT_MATRIX:
            assert f"{profile.name}:" in prompt
        assert "- Strong (+3): INVOICE, Tax Invoice, GSTIN, Invoice No." in prompt
        assert "- Weak (+1): Quantity, Rate, Amount" in prompt
        assert prompt.endswith("Input: some text")

    def test_truncates_long_text(self):
        prompt = build_prompt(DEFAULT_MATRIX, "a" * 20000)

        assert prompt.endswith("Input: " + "a" * 10000)


class TestParseResponse:

    def test_plain_json(self):
        assert parse_response(json.dumps(VERDICT))["probable_type"] == "Invoice"

    def test_code_fenced_json(self):
        content = "```json\n" + json.dumps(VERDICT) + "\n```"

        assert parse_response(content)["confidence_percentage"] == 92.4

    def test_invalid_json(self):
        with pytest.raises(GeminiClassificationError):
            parse_response("not json")

    def test_non_object(self):
        with pytest.raises(GeminiClassificationError):
            parse_response("[1, 2]")


class TestClassifyWithGemini:

    @pytest.mark.asyncio
    async def test_successful_verdict(self, invoice_text):
        client = _client_returning(json.dumps(VERDICT))

        result = await classify_with_gemini(invoice_text, client, model="gemini-test")

        assert result.probable_type == "Invoice"
        assert result.confidence_percentage == 92.4
        assert result.method == "gemini"
        assert result.unique_keywords_count == 2
        assert result.keywords_detected[1].tier == "moderate"
        assert result.validation_status == "PASSED"
        call_kwargs = client.models.generate_content.call_args.kwargs
        assert call_kwargs["model"] == "gemini-test"

    @pytest.mark.asyncio
    async def test_type_name_is_matched_case_insensitively(self, invoice_text):
        client = _client_returning(json.dumps({**VERDICT, "probable_type": "bank statement"}))

        result = await classify_with_gemini(invoice_text, client)

        assert result.probable_type == "Bank Statement"

    @pytest.mark.asyncio
    async def test_unknown_type_name(self, invoice_text):
        client = _client_returning(json.dumps({**VERDICT, "probable_type": "Passport"}))

        result = await classify_with_gemini(invoice_text, client)

        assert result.probable_type == "Unknown"
        assert result.validation_status == "FAILED"

    @pytest.mark.asyncio
    async def test_low_confidence_is_unknown(self, invoice_text):
        client = _client_returning(json.dumps({**VERDICT, "confidence_percentage": 30}))

        result = await classify_with_gemini(invoice_text, client)

        assert result.probable_type == "Unknown"
        assert result.confidence_percentage == 30.0

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self, invoice_text):
        client = _client_returning(json.dumps({**VERDICT, "confidence_percentage": 140}))

        result = await classify_with_gemini(invoice_text, client)

        assert result.confidence_percentage == 100.0

    @pytest.mark.asyncio
    async def test_empty_text_skips_the_call(self):
        client = _client_returning(json.dumps(VERDICT))

        result = await classify_with_gemini("  ", client)

        assert result.probable_type == "Unknown"
        client.models.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_response_raises(self, invoice_text):
        client = _client_returning("")

        with pytest.raises(GeminiClassificationError):
            await classify_with_gemini(invoice_text, client)

    @pytest.mark.asyncio
    async def test_missing_fields_raise(self, invoice_text):
        client = _client_returning(json.dumps({"reasoning": "no verdict"}))

        with pytest.raises(GeminiClassificationError):
            await classify_with_gemini(invoice_text, client)
