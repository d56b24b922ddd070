"""Weighted keyword-matrix document classifier.

Turns raw OCR text into a document type verdict:

1. Region segmentation (header / body / footer)
2. Keyword matching per document type, with occurrence capping
3. Raw, exclusion-adjusted and normalized scores per type
4. Validation penalties and overrides on the winning type

The engine is a pure function of its inputs. It never raises for low
confidence; "Unknown" is an ordinary outcome.
"""

import logging
from typing import List, Optional, Sequence

from app.models.classification import (
    ClassificationResult,
    DocumentTypeProfile,
    ScoringPolicy,
    TypeScore,
    UNKNOWN_TYPE,
)
from app.services.classification_validator import (
    ValidationOutcome,
    assess_text_quality,
    validate_primary,
)
from app.services.keyword_matrix import resolve_matrix
from app.services.region_segmenter import segment_text
from app.services.score_aggregator import score_all

logger = logging.getLogger(__name__)


def classify(
    ocr_text: str,
    matrix: Optional[Sequence[DocumentTypeProfile]] = None,
    policy: Optional[ScoringPolicy] = None,
) -> ClassificationResult:
    """Classify OCR text against a keyword matrix.

    Args:
        ocr_text: Plain text produced by OCR.
        matrix: Document type profiles; the built-in default matrix is used
            when None or empty.
        policy: Thresholds and penalty sizes (defaults to ``ScoringPolicy()``).

    Returns:
        ClassificationResult for this text.

    Raises:
        TypeError: If ``ocr_text`` is not a string.
    """
    if not isinstance(ocr_text, str):
        raise TypeError(f"ocr_text must be str, got {type(ocr_text).__name__}")

    policy = policy or ScoringPolicy()
    text = ocr_text.strip()

    if not text:
        return _unknown(text, "No text content found in document", policy)

    if len(text) < policy.min_text_length:
        return _unknown(
            text,
            f"Insufficient text for classification: {len(text)} characters "
            f"(minimum {policy.min_text_length})",
            policy,
        )

    profiles = resolve_matrix(matrix)
    segmented = segment_text(text, policy)
    ranked = score_all(profiles, segmented, policy)

    if not ranked or ranked[0].adjusted_score <= 0:
        return _unknown(text, "No document type keywords matched", policy, ranked=ranked)

    primary = ranked[0]
    profile = next(p for p in profiles if p.name == primary.type_name)
    outcome = validate_primary(ranked, profile, text, policy)

    secondary = ranked[1] if len(ranked) > 1 else None
    if secondary is not None and secondary.normalized_confidence <= policy.secondary_min_confidence:
        secondary = None

    result = ClassificationResult(
        probable_type=outcome.probable_type,
        confidence_percentage=round(outcome.confidence, 2),
        secondary_type=secondary.type_name if secondary else None,
        secondary_confidence=round(secondary.normalized_confidence, 2) if secondary else None,
        keywords_detected=list(primary.matches),
        unique_keywords_count=primary.unique_keywords_count,
        exclusion_keywords_found=list(primary.exclusion_keywords_found),
        mandatory_fields_status=outcome.mandatory_fields_status,
        validation_status=outcome.validation_status,  # type: ignore[arg-type]
        validation_penalties_applied=outcome.penalties,
        ambiguity_warning=outcome.ambiguity_warning,
        text_quality=assess_text_quality(len(text), policy),
        text_length=len(text),
        reasoning=_build_reasoning(primary, outcome, secondary),
        pre_validation_type=primary.type_name,
        pre_validation_confidence=round(primary.normalized_confidence, 2),
    )
    logger.debug(
        "Classified %d chars as %s (%.2f%%, %s)",
        len(text), result.probable_type, result.confidence_percentage, result.validation_status,
    )
    return result


def _unknown(
    text: str,
    reasoning: str,
    policy: ScoringPolicy,
    ranked: Optional[List[TypeScore]] = None,
) -> ClassificationResult:
    return ClassificationResult(
        probable_type=UNKNOWN_TYPE,
        confidence_percentage=0.0,
        validation_status="FAILED",
        text_quality=assess_text_quality(len(text), policy),
        text_length=len(text),
        reasoning=reasoning,
        pre_validation_type=UNKNOWN_TYPE if ranked is not None else None,
        pre_validation_confidence=0.0 if ranked is not None else None,
    )


def _build_reasoning(
    primary: TypeScore,
    outcome: ValidationOutcome,
    secondary: Optional[TypeScore],
) -> str:
    strong = sorted({m.keyword for m in primary.matches if m.tier == "strong"})
    parts = [
        f"{primary.type_name} scored {primary.normalized_confidence:.1f}% before validation "
        f"from {primary.unique_keywords_count} distinct keyword(s)"
    ]
    if strong:
        parts.append(f"strong indicators: {', '.join(strong)}")
    if primary.exclusion_keywords_found:
        parts.append(f"exclusion terms found: {', '.join(primary.exclusion_keywords_found)}")
    if secondary is not None:
        parts.append(f"runner-up {secondary.type_name} at {secondary.normalized_confidence:.1f}%")
    if outcome.penalties:
        parts.append(f"{len(outcome.penalties)} validation penalt{'y' if len(outcome.penalties) == 1 else 'ies'} applied")
    if outcome.probable_type == UNKNOWN_TYPE:
        parts.append(f"final confidence {outcome.confidence:.1f}% is below the threshold, classified as Unknown")
    return "; ".join(parts) + "."
