"""Validation penalties and overrides for the primary candidate.

Rules run in a fixed order, each subtracting percentage points from the
primary candidate's confidence (never below zero):

1. unique keyword floor
2. mandatory fields
3. keyword stuffing
4. text quality
5. ambiguity between the top two candidates
6. final override to "Unknown" below the confidence threshold
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.models.classification import (
    DocumentTypeProfile,
    FieldStatus,
    MandatoryRule,
    ScoringPolicy,
    TextQuality,
    TypeScore,
    UNKNOWN_TYPE,
)
from app.services.keyword_matcher import contains_keyword


@dataclass
class ValidationOutcome:
    probable_type: str
    confidence: float
    penalties: List[str] = field(default_factory=list)
    mandatory_fields_status: Dict[str, FieldStatus] = field(default_factory=dict)
    mandatory_rule_met: bool = True
    ambiguity_warning: Optional[str] = None

    @property
    def validation_status(self) -> str:
        if self.penalties or not self.mandatory_rule_met:
            return "FAILED"
        return "PASSED"

    def apply(self, points: float, message: str) -> None:
        self.confidence = max(0.0, self.confidence - points)
        self.penalties.append(f"{message} (-{points:g}%)")


def assess_text_quality(text_length: int, policy: ScoringPolicy) -> TextQuality:
    if text_length > policy.good_text_length:
        return "good"
    if text_length >= policy.fair_text_length:
        return "fair"
    return "poor"


def evaluate_mandatory_fields(rule: MandatoryRule, text_lower: str) -> Dict[str, FieldStatus]:
    """Mark each condition present when any of its evidence keywords occurs."""
    status: Dict[str, FieldStatus] = {}
    for condition in rule.conditions:
        present = any(contains_keyword(text_lower, kw) for kw in condition.keywords)
        status[condition.name] = "present" if present else "missing"
    return status


def validate_primary(
    ranked: List[TypeScore],
    profile: DocumentTypeProfile,
    text: str,
    policy: ScoringPolicy,
) -> ValidationOutcome:
    """Apply the validation rules to ``ranked[0]``, the primary candidate."""
    primary = ranked[0]
    outcome = ValidationOutcome(
        probable_type=primary.type_name,
        confidence=primary.normalized_confidence,
    )
    name = primary.type_name
    text_lower = text.lower()

    # 1. Unique keyword floor
    unique_count = primary.unique_keywords_count
    if unique_count < policy.unique_keyword_floor:
        outcome.apply(
            policy.unique_keyword_penalty,
            f"Unique keyword floor: only {unique_count} distinct {name} keyword(s) matched "
            f"(minimum {policy.unique_keyword_floor}); a {name} is recognised by several "
            f"independent indicators, not one or two",
        )

    # 2. Mandatory fields
    rule = profile.mandatory_fields
    outcome.mandatory_fields_status = evaluate_mandatory_fields(rule, text_lower)
    satisfied = sum(1 for s in outcome.mandatory_fields_status.values() if s == "present")
    shortfall = max(0, rule.required_count - satisfied)
    outcome.mandatory_rule_met = shortfall == 0
    if shortfall:
        per_missing = (
            rule.penalty_per_missing
            if rule.penalty_per_missing is not None
            else policy.mandatory_field_penalty
        )
        missing = [c for c in rule.conditions if outcome.mandatory_fields_status[c.name] == "missing"]
        for condition in missing[:shortfall]:
            why = condition.rationale or f"it is required evidence for a {name}"
            outcome.apply(
                per_missing,
                f"Mandatory field missing for {name}: {condition.name}; {why}",
            )

    # 3. Keyword stuffing
    if unique_count < policy.unique_keyword_floor:
        stuffed = _most_repeated(primary)
        if stuffed is not None and stuffed[1] > policy.stuffing_occurrence_threshold:
            keyword, count = stuffed
            outcome.apply(
                policy.stuffing_penalty,
                f"Keyword stuffing: '{keyword}' appears {count} times with only {unique_count} "
                f"distinct keyword(s); repetition is not diverse evidence of a {name}",
            )

    # 4. Text quality
    quality = assess_text_quality(len(text), policy)
    if quality == "poor" and policy.poor_text_penalty:
        outcome.apply(
            policy.poor_text_penalty,
            f"Poor text quality: {len(text)} characters (under {policy.fair_text_length}); "
            f"too little content to confirm a {name}",
        )
    elif quality == "fair" and policy.fair_text_penalty:
        outcome.apply(
            policy.fair_text_penalty,
            f"Fair text quality: {len(text)} characters; limited content to confirm a {name}",
        )

    # 5. Ambiguity
    if len(ranked) > 1 and ranked[1].normalized_confidence > 0:
        runner_up = ranked[1]
        gap = abs(outcome.confidence - runner_up.normalized_confidence)
        if gap < policy.ambiguity_margin:
            outcome.ambiguity_warning = (
                f"Ambiguous classification: {name} ({outcome.confidence:.1f}%) and "
                f"{runner_up.type_name} ({runner_up.normalized_confidence:.1f}%) differ by "
                f"less than {policy.ambiguity_margin:g} points"
            )
            outcome.apply(
                policy.ambiguity_penalty,
                f"Ambiguity: {name} is within {policy.ambiguity_margin:g} points of "
                f"{runner_up.type_name}; a close call should not report high confidence",
            )

    # 6. Final override
    if outcome.confidence < policy.unknown_threshold:
        outcome.probable_type = UNKNOWN_TYPE

    return outcome


def _most_repeated(score: TypeScore) -> Optional[tuple[str, int]]:
    totals: Dict[str, int] = {}
    for match in score.matches:
        totals[match.keyword] = totals.get(match.keyword, 0) + match.occurrences
    if not totals:
        return None
    keyword = max(totals, key=lambda k: totals[k])
    return keyword, totals[keyword]
