"""Pydantic models for document type classification.

Covers the keyword matrix configuration (profiles, keyword entries,
mandatory-field rules), the scoring policy, and the results produced by
the classification engine and the chunk aggregator.
"""

import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


Tier = Literal["strong", "moderate", "weak"]
Region = Literal["header", "body", "footer"]
TextQuality = Literal["good", "fair", "poor"]
ValidationStatus = Literal["PASSED", "FAILED"]
FieldStatus = Literal["present", "missing"]

TIER_WEIGHTS: Dict[str, int] = {"strong": 3, "moderate": 2, "weak": 1}

UNKNOWN_TYPE = "Unknown"
MIXED_DOCUMENT_TYPE = "Mixed Document"


# =============================================================================
# KEYWORD MATRIX CONFIGURATION
# =============================================================================

class KeywordEntry(BaseModel):
    """A single weighted keyword with per-region multipliers."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Keyword or phrase, matched case-insensitively")
    tier: Tier = Field(description="strong, moderate or weak")
    weight: int = Field(ge=1, le=3, description="3 = strong, 2 = moderate, 1 = weak")
    header_multiplier: float = Field(default=1.0, description="Multiplier for matches in the header")
    body_multiplier: float = Field(default=1.0, description="Multiplier for matches in the body")
    footer_multiplier: float = Field(default=1.0, description="Multiplier for matches in the footer")

    @model_validator(mode="before")
    @classmethod
    def derive_weight_from_tier(cls, data: Any) -> Any:
        if isinstance(data, dict) and "weight" not in data and data.get("tier") in TIER_WEIGHTS:
            data = {**data, "weight": TIER_WEIGHTS[data["tier"]]}
        return data

    @field_validator("header_multiplier", "body_multiplier", "footer_multiplier", mode="before")
    @classmethod
    def default_malformed_multiplier(cls, v: Any) -> float:
        """Substitute 1.0 for a missing, non-numeric or non-positive multiplier."""
        try:
            value = float(v)
        except (TypeError, ValueError):
            logger.warning("Invalid region multiplier %r, using 1.0", v)
            return 1.0
        if value <= 0:
            logger.warning("Non-positive region multiplier %r, using 1.0", v)
            return 1.0
        return value

    @model_validator(mode="after")
    def check_weight_matches_tier(self) -> "KeywordEntry":
        if TIER_WEIGHTS[self.tier] != self.weight:
            raise ValueError(
                f"Keyword '{self.text}' has weight {self.weight} but tier '{self.tier}' "
                f"requires weight {TIER_WEIGHTS[self.tier]}"
            )
        return self

    def multiplier_for(self, region: str) -> float:
        if region == "header":
            return self.header_multiplier
        if region == "footer":
            return self.footer_multiplier
        return self.body_multiplier


class MandatoryCondition(BaseModel):
    """One required piece of evidence, satisfied by any of its keywords."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Short field name, e.g. 'Invoice Number'")
    keywords: Tuple[str, ...] = Field(default=(), description="Evidence keywords (any one suffices)")
    rationale: str = Field(default="", description="Why this field matters for the document type")


class MandatoryRule(BaseModel):
    """Requirement set: at least ``min_satisfied`` of ``conditions`` must hold."""
    model_config = ConfigDict(frozen=True)

    description: str = Field(default="", description="Human-readable summary of the requirement")
    conditions: Tuple[MandatoryCondition, ...] = Field(default=())
    min_satisfied: Optional[int] = Field(
        default=None, ge=0,
        description="Minimum satisfied conditions (defaults to all of them)"
    )
    penalty_per_missing: Optional[float] = Field(
        default=None, ge=0, le=100,
        description="Points subtracted per missing condition; overrides the policy value"
    )

    @property
    def required_count(self) -> int:
        if self.min_satisfied is None:
            return len(self.conditions)
        return min(self.min_satisfied, len(self.conditions))


class DocumentTypeProfile(BaseModel):
    """Keyword evidence, exclusions and mandatory fields for one document type."""
    model_config = ConfigDict(frozen=True)

    name: str
    strong: Tuple[KeywordEntry, ...] = Field(default=())
    moderate: Tuple[KeywordEntry, ...] = Field(default=())
    weak: Tuple[KeywordEntry, ...] = Field(default=())
    exclusion_keywords: Tuple[str, ...] = Field(default=())
    exclusion_penalty_percent: float = Field(default=50.0, ge=0, le=100)
    mandatory_fields: MandatoryRule = Field(default_factory=MandatoryRule)

    @model_validator(mode="before")
    @classmethod
    def expand_keyword_shorthand(cls, data: Any) -> Any:
        """Allow tier lists of plain strings and fill in each entry's tier."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for tier in TIER_WEIGHTS:
            entries = data.get(tier)
            if entries is None:
                continue
            expanded = []
            for entry in entries:
                if isinstance(entry, str):
                    expanded.append({"text": entry, "tier": tier})
                elif isinstance(entry, dict):
                    expanded.append({"tier": tier, **entry})
                else:
                    expanded.append(entry)
            data[tier] = expanded
        return data

    @model_validator(mode="after")
    def check_tier_lists(self) -> "DocumentTypeProfile":
        for tier in TIER_WEIGHTS:
            for entry in getattr(self, tier):
                if entry.tier != tier:
                    raise ValueError(
                        f"Keyword '{entry.text}' listed under '{tier}' for {self.name} "
                        f"but declared as '{entry.tier}'"
                    )
        return self

    @property
    def keywords(self) -> Tuple[KeywordEntry, ...]:
        """All entries, strongest tier first."""
        return self.strong + self.moderate + self.weak


class ScoringPolicy(BaseModel):
    """Thresholds and penalty sizes used by the scoring engine.

    Penalties are percentage points subtracted from the primary candidate's
    confidence.
    """
    model_config = ConfigDict(frozen=True)

    header_chars: int = Field(default=500, ge=0)
    footer_chars: int = Field(default=300, ge=0)
    occurrence_cap: int = Field(default=3, ge=1)

    min_text_length: int = Field(default=50, ge=0)
    good_text_length: int = Field(default=500, description="Longer than this is 'good'")
    fair_text_length: int = Field(default=200, description="At least this is 'fair'")
    fair_text_penalty: float = Field(default=0.0, ge=0)
    poor_text_penalty: float = Field(default=20.0, ge=0)

    unique_keyword_floor: int = Field(default=3, ge=0)
    unique_keyword_penalty: float = Field(default=40.0, ge=0)
    mandatory_field_penalty: float = Field(default=15.0, ge=0)
    stuffing_occurrence_threshold: int = Field(default=5, ge=0)
    stuffing_penalty: float = Field(default=20.0, ge=0)
    ambiguity_margin: float = Field(default=15.0, ge=0)
    ambiguity_penalty: float = Field(default=10.0, ge=0)

    secondary_min_confidence: float = Field(default=15.0, ge=0)
    unknown_threshold: float = Field(default=40.0, ge=0)


# =============================================================================
# ENGINE OUTPUT
# =============================================================================

class KeywordMatch(BaseModel):
    """Occurrences of one keyword within one region of the text."""
    model_config = ConfigDict(frozen=True)

    keyword: str
    weight: int
    tier: Tier
    region: Region
    occurrences: int = Field(description="Raw occurrence count in this region")
    capped_occurrences: int = Field(description="Occurrences that count toward the score")


class TypeScore(BaseModel):
    """Scores for one candidate document type in one classification call."""

    type_name: str
    raw_score: float = 0.0
    exclusion_count: int = 0
    exclusion_keywords_found: List[str] = Field(default_factory=list)
    adjusted_score: float = 0.0
    normalized_confidence: float = 0.0
    unique_keywords_count: int = 0
    matches: List[KeywordMatch] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    """Classification verdict for one piece of OCR text (one chunk)."""

    probable_type: str = Field(description="Winning document type, or 'Unknown'")
    confidence_percentage: float = Field(ge=0.0, le=100.0)
    secondary_type: Optional[str] = None
    secondary_confidence: Optional[float] = None
    keywords_detected: List[KeywordMatch] = Field(default_factory=list)
    unique_keywords_count: int = 0
    exclusion_keywords_found: List[str] = Field(default_factory=list)
    mandatory_fields_status: Dict[str, FieldStatus] = Field(default_factory=dict)
    validation_status: ValidationStatus = "FAILED"
    validation_penalties_applied: List[str] = Field(default_factory=list)
    ambiguity_warning: Optional[str] = None
    text_quality: TextQuality = "poor"
    text_length: int = 0
    reasoning: str = ""
    pre_validation_type: Optional[str] = None
    pre_validation_confidence: Optional[float] = None
    method: Literal["keyword_matrix", "gemini"] = "keyword_matrix"


class ChunkSummary(BaseModel):
    """Minimal per-chunk verdict consumed by the chunk aggregator."""

    chunk_index: int
    page_count: int = Field(ge=0)
    probable_type: str
    confidence_percentage: float = Field(ge=0.0, le=100.0)


class ChunkResult(BaseModel):
    """Classification of one contiguous page range of a document."""

    chunk_index: int
    page_count: int = Field(ge=0)
    classification: ClassificationResult

    def summary(self) -> ChunkSummary:
        return ChunkSummary(
            chunk_index=self.chunk_index,
            page_count=self.page_count,
            probable_type=self.classification.probable_type,
            confidence_percentage=self.classification.confidence_percentage,
        )


class AggregatedResult(BaseModel):
    """Final verdict for a whole (possibly multi-chunk) document."""

    final_type: str
    final_confidence: float
