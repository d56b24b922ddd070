"""Tests for the end-to-end keyword-matrix classifier."""

import pytest

from app.models.classification import DocumentTypeProfile, ScoringPolicy
from app.services.document_classifier import classify
from app.services.keyword_matrix import DEFAULT_MATRIX, load_matrix

PADDING = "." * 600


@pytest.fixture
def two_type_matrix():
    return load_matrix([
        {"name": "Alpha", "strong": ["alpha", "beta", "gamma"]},
        {"name": "Delta", "strong": ["delta", "epsilon", "zeta"]},
    ])


class TestShortCircuits:

    def test_empty_text(self):
        result = classify("")

        assert result.probable_type == "Unknown"
        assert result.confidence_percentage == 0.0
        assert result.reasoning == "No text content found in document"
        assert result.text_quality == "poor"

    def test_whitespace_only_text(self):
        result = classify("   \n\t  ")

        assert result.probable_type == "Unknown"
        assert result.text_length == 0

    def test_text_under_minimum_length(self):
        result = classify("INVOICE GSTIN Invoice No. Buyer")

        assert result.probable_type == "Unknown"
        assert result.confidence_percentage == 0.0
        assert "Insufficient text" in result.reasoning
        assert result.keywords_detected == []
        assert result.text_quality == "poor"

    def test_no_keywords_matched(self):
        result = classify("lorem ipsum dolor sit amet " * 3)

        assert result.probable_type == "Unknown"
        assert result.confidence_percentage == 0.0
        assert result.reasoning == "No document type keywords matched"

    def test_non_string_input_raises(self):
        with pytest.raises(TypeError):
            classify(None)  # type: ignore[arg-type]


class TestDefaultMatrix:

    def test_short_invoice(self, invoice_text):
        result = classify(invoice_text)

        assert result.probable_type == "Invoice"
        assert result.pre_validation_confidence == 100.0
        # only the poor-text penalty applies
        assert result.confidence_percentage == 80.0
        assert result.text_quality == "poor"
        assert result.validation_status == "FAILED"
        assert len(result.validation_penalties_applied) == 1
        assert result.mandatory_fields_status == {
            "Invoice Number": "present",
            "Total Amount": "present",
            "Counterparty": "present",
        }
        assert result.secondary_type is None

    def test_long_invoice_passes(self, long_invoice_text):
        result = classify(long_invoice_text)

        assert result.probable_type == "Invoice"
        assert result.confidence_percentage == 100.0
        assert result.validation_status == "PASSED"
        assert result.validation_penalties_applied == []
        assert result.text_quality == "good"
        assert "INVOICE" in result.reasoning

    def test_keywords_detected_in_text_order(self, invoice_text):
        result = classify(invoice_text)
        keywords = [m.keyword for m in result.keywords_detected]

        assert keywords[0] == "INVOICE"
        assert keywords.index("GSTIN") < keywords.index("Invoice No.")
        assert keywords.index("Buyer") < keywords.index("Total Amount")

    def test_exclusions_keep_resume_from_winning(self):
        text = "Work Experience: 5 years at Acme\nEducation: B.Tech\nInvoice GSTIN 22AAAAA0000A1Z5 listed"

        result = classify(text)

        assert result.probable_type != "Resume"
        assert result.pre_validation_type == "Invoice"

    def test_none_and_empty_matrix_use_default(self, invoice_text):
        expected = classify(invoice_text, DEFAULT_MATRIX)

        assert classify(invoice_text, None) == expected
        assert classify(invoice_text, ()) == expected

    def test_classification_is_deterministic(self, long_invoice_text):
        assert classify(long_invoice_text) == classify(long_invoice_text)


class TestCustomMatrix:

    def test_secondary_reported_above_threshold(self):
        matrix = load_matrix([
            {"name": "Alpha", "strong": ["alpha", "beta", "gamma"]},
            {"name": "Delta", "strong": ["delta"]},
        ])

        result = classify("alpha beta gamma delta " + PADDING, matrix)

        assert result.probable_type == "Alpha"
        assert result.confidence_percentage == 75.0
        assert result.secondary_type == "Delta"
        assert result.secondary_confidence == 25.0
        assert result.validation_status == "PASSED"

    def test_secondary_hidden_at_low_confidence(self):
        matrix = load_matrix([
            {"name": "Alpha", "strong": ["alpha", "beta", "gamma"]},
            {"name": "Delta", "weak": ["delta"]},
        ])

        result = classify("alpha beta gamma " * 3 + "delta " + PADDING, matrix)

        assert result.probable_type == "Alpha"
        assert result.secondary_type is None
        assert result.secondary_confidence is None

    def test_tie_keeps_matrix_order_and_is_ambiguous(self, two_type_matrix):
        text = "alpha beta gamma delta epsilon zeta " + PADDING

        result = classify(text, two_type_matrix)

        assert result.pre_validation_type == "Alpha"
        assert result.ambiguity_warning is not None
        # 50 - 10 for ambiguity, not below 40
        assert result.confidence_percentage == 40.0
        assert result.probable_type == "Alpha"
        assert result.secondary_type == "Delta"

    def test_single_repeated_keyword_is_penalized(self, two_type_matrix):
        result = classify("alpha " * 40 + PADDING, two_type_matrix)

        # 100 - 40 (unique floor) - 20 (stuffing)
        assert result.pre_validation_confidence == 100.0
        assert result.confidence_percentage == 40.0
        assert result.validation_status == "FAILED"
        assert len(result.validation_penalties_applied) == 2
        assert result.keywords_detected[0].occurrences == 40
        assert result.keywords_detected[0].capped_occurrences == 3

    def test_custom_policy(self, invoice_text):
        lenient = ScoringPolicy(poor_text_penalty=0)

        result = classify(invoice_text, policy=lenient)

        assert result.confidence_percentage == 100.0
        assert result.validation_status == "PASSED"

    def test_malformed_multiplier_defaults_to_one(self):
        profile = DocumentTypeProfile.model_validate({
            "name": "Alpha",
            "strong": [
                {"text": "alpha", "header_multiplier": None},
                {"text": "beta", "header_multiplier": "abc"},
                {"text": "gamma", "header_multiplier": -2},
            ],
        })

        result = classify("alpha beta gamma " + PADDING, [profile])

        assert all(kw.multiplier_for("header") == 1.0 for kw in profile.strong)
        assert result.probable_type == "Alpha"
        assert result.confidence_percentage == 100.0
