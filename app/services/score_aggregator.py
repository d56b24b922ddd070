"""Per-type scoring, exclusion penalties and normalization."""

import logging
from typing import List, Sequence

from app.models.classification import DocumentTypeProfile, ScoringPolicy, TypeScore
from app.services.keyword_matcher import ProfileMatches, contains_keyword, match_profile
from app.services.region_segmenter import SegmentedText

logger = logging.getLogger(__name__)


def raw_score(matches: ProfileMatches) -> float:
    """Sum of weight x region multiplier x capped occurrences."""
    total = 0.0
    for match in matches.matches:
        entry = matches.entries[match.keyword]
        total += match.weight * entry.multiplier_for(match.region) * match.capped_occurrences
    return total


def find_exclusions(profile: DocumentTypeProfile, text_lower: str) -> List[str]:
    """Distinct exclusion keywords present in the text, in configured order."""
    found: List[str] = []
    seen: set[str] = set()
    for keyword in profile.exclusion_keywords:
        key = keyword.strip().lower()
        if key in seen:
            continue
        if contains_keyword(text_lower, keyword):
            found.append(keyword)
            seen.add(key)
    return found


def adjusted_score(raw: float, exclusion_penalty_percent: float, exclusion_count: int) -> float:
    factor = max(0.0, 1.0 - (exclusion_penalty_percent / 100.0) * exclusion_count)
    return raw * factor


def score_profile(
    profile: DocumentTypeProfile,
    segmented: SegmentedText,
    policy: ScoringPolicy,
) -> TypeScore:
    matches = match_profile(profile, segmented, policy.occurrence_cap)
    raw = raw_score(matches)
    exclusions = find_exclusions(profile, segmented.text.lower())
    return TypeScore(
        type_name=profile.name,
        raw_score=raw,
        exclusion_count=len(exclusions),
        exclusion_keywords_found=exclusions,
        adjusted_score=adjusted_score(raw, profile.exclusion_penalty_percent, len(exclusions)),
        unique_keywords_count=len(matches.unique_keywords),
        matches=matches.matches,
    )


def normalize(scores: List[TypeScore]) -> List[TypeScore]:
    """Fill in normalized confidences so they sum to 100 (or are all 0)."""
    total = sum(score.adjusted_score for score in scores)
    for score in scores:
        score.normalized_confidence = (score.adjusted_score / total * 100.0) if total > 0 else 0.0
    return scores


def rank(scores: List[TypeScore]) -> List[TypeScore]:
    """Highest confidence first; ties keep matrix order."""
    return sorted(scores, key=lambda s: -s.normalized_confidence)


def score_all(
    matrix: Sequence[DocumentTypeProfile],
    segmented: SegmentedText,
    policy: ScoringPolicy,
) -> List[TypeScore]:
    """Score every profile and return them ranked by normalized confidence."""
    scores = normalize([score_profile(profile, segmented, policy) for profile in matrix])
    for score in scores:
        logger.debug(
            "%s: raw=%.2f exclusions=%d adjusted=%.2f confidence=%.2f",
            score.type_name, score.raw_score, score.exclusion_count,
            score.adjusted_score, score.normalized_confidence,
        )
    return rank(scores)
