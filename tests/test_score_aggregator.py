"""Tests for raw scores, exclusion penalties, normalization and ranking."""

import pytest

from app.models.classification import DocumentTypeProfile, ScoringPolicy, TypeScore
from app.services.keyword_matcher import match_profile
from app.services.keyword_matrix import DEFAULT_MATRIX
from app.services.region_segmenter import segment_text
from app.services.score_aggregator import (
    adjusted_score,
    find_exclusions,
    normalize,
    rank,
    raw_score,
    score_all,
    score_profile,
)

POLICY = ScoringPolicy()


class TestRawScore:

    def test_weight_times_multiplier_times_occurrences(self):
        profile = DocumentTypeProfile(
            name="Invoice",
            strong=[{"text": "INVOICE", "header_multiplier": 1.5}],
            weak=["Rate"],
        )
        matches = match_profile(profile, segment_text("INVOICE rate rate"))

        # 3 * 1.5 * 1 + 1 * 1.0 * 2
        assert raw_score(matches) == pytest.approx(6.5)

    def test_repetition_beyond_cap_adds_nothing(self):
        profile = DocumentTypeProfile(name="Test", weak=["alpha"])

        three = score_profile(profile, segment_text("alpha " * 3), POLICY)
        ten = score_profile(profile, segment_text("alpha " * 10), POLICY)

        assert three.raw_score == ten.raw_score == 3.0


class TestExclusions:

    def test_adjusted_score_factor(self):
        assert adjusted_score(10.0, 50, 0) == 10.0
        assert adjusted_score(10.0, 50, 1) == 5.0
        assert adjusted_score(10.0, 30, 1) == pytest.approx(7.0)

    def test_adjusted_score_floors_at_zero(self):
        assert adjusted_score(10.0, 50, 2) == 0.0
        assert adjusted_score(10.0, 50, 3) == 0.0

    def test_find_exclusions_counts_distinct_keywords(self):
        profile = DocumentTypeProfile(
            name="Resume",
            exclusion_keywords=["Invoice", "GSTIN", "invoice"],
        )
        found = find_exclusions(profile, "invoice invoice gstin")

        assert found == ["Invoice", "GSTIN"]

    def test_more_exclusions_never_raise_the_score(self):
        profile = DocumentTypeProfile(
            name="Resume",
            strong=["Work Experience", "Education"],
            exclusion_keywords=["foo", "bar"],
            exclusion_penalty_percent=30,
        )
        base = "Work Experience and Education "

        none = score_profile(profile, segment_text(base), POLICY)
        one = score_profile(profile, segment_text(base + "foo"), POLICY)
        two = score_profile(profile, segment_text(base + "foo bar"), POLICY)

        assert none.adjusted_score >= one.adjusted_score >= two.adjusted_score
        assert two.exclusion_count == 2
        assert two.adjusted_score == pytest.approx(two.raw_score * 0.4)


class TestNormalizeAndRank:

    def test_confidences_sum_to_100(self):
        scores = normalize([
            TypeScore(type_name="A", adjusted_score=3.0),
            TypeScore(type_name="B", adjusted_score=1.0),
        ])

        assert [s.normalized_confidence for s in scores] == [75.0, 25.0]
        assert sum(s.normalized_confidence for s in scores) == pytest.approx(100.0)

    def test_all_zero_scores_stay_zero(self):
        scores = normalize([TypeScore(type_name="A"), TypeScore(type_name="B")])

        assert all(s.normalized_confidence == 0.0 for s in scores)

    def test_ties_keep_matrix_order(self):
        ranked = rank([
            TypeScore(type_name="First", normalized_confidence=40.0),
            TypeScore(type_name="Second", normalized_confidence=60.0),
            TypeScore(type_name="Third", normalized_confidence=40.0),
        ])

        assert [s.type_name for s in ranked] == ["Second", "First", "Third"]


class TestScoreAll:

    def test_invoice_text_scores_only_invoice(self, invoice_text):
        ranked = score_all(DEFAULT_MATRIX, segment_text(invoice_text), POLICY)

        assert ranked[0].type_name == "Invoice"
        assert ranked[0].normalized_confidence == pytest.approx(100.0)
        assert ranked[0].unique_keywords_count == 6
        assert all(s.normalized_confidence == 0.0 for s in ranked[1:])

    def test_exclusions_zero_out_resume(self):
        text = "Work Experience: 5 years at Acme\nEducation: B.Tech\nInvoice GSTIN 22AAAAA0000A1Z5 listed"
        ranked = score_all(DEFAULT_MATRIX, segment_text(text), POLICY)
        resume = next(s for s in ranked if s.type_name == "Resume")

        assert resume.raw_score > 0
        assert resume.exclusion_keywords_found == ["Invoice", "GSTIN"]
        assert resume.adjusted_score == 0.0
        assert resume.normalized_confidence == 0.0
        assert ranked[0].type_name == "Invoice"

    def test_confidences_sum_to_100_on_default_matrix(self, long_invoice_text):
        ranked = score_all(DEFAULT_MATRIX, segment_text(long_invoice_text), POLICY)

        assert sum(s.normalized_confidence for s in ranked) == pytest.approx(100.0)
