"""Generative classification strategy using Gemini.

An alternative to the deterministic keyword-matrix engine: the active
matrix is rendered into a prompt and Gemini returns a JSON verdict. The
response is not reproducible, so callers fall back to the keyword engine
when the call fails.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, ValidationError

from app.models.classification import (
    ClassificationResult,
    DocumentTypeProfile,
    KeywordMatch,
    ScoringPolicy,
    TIER_WEIGHTS,
    UNKNOWN_TYPE,
)
from app.services.classification_validator import assess_text_quality
from app.services.keyword_matrix import resolve_matrix
from app.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

MAX_PROMPT_TEXT_CHARS = 10000
UNKNOWN_THRESHOLD = 40.0


class GeminiClassificationError(Exception):
    """Raised when Gemini returns no usable classification."""


class GeminiKeyword(BaseModel):
    keyword: str
    weight: int = Field(default=1, ge=1, le=3)
    type: str = "weak"


class GeminiVerdict(BaseModel):
    """Shape of the JSON object Gemini is asked to return."""

    probable_type: str
    confidence_percentage: float
    keywords_detected: List[GeminiKeyword] = Field(default_factory=list)
    reasoning: str = ""


def build_prompt(matrix: Sequence[DocumentTypeProfile], ocr_text: str) -> str:
    """Render the classification prompt for ``matrix`` and ``ocr_text``."""
    lines = [
        "You are a document type classifier.",
        "Analyze this OCR text and output normalized confidence scores for the following "
        "types using this weighted keyword matrix:",
        "",
    ]
    for profile in matrix:
        lines.append(f"{profile.name}:")
        for tier, label in (("strong", "Strong"), ("moderate", "Moderate"), ("weak", "Weak")):
            entries = getattr(profile, tier)
            if entries:
                keywords = ", ".join(entry.text for entry in entries)
                lines.append(f"- {label} (+{TIER_WEIGHTS[tier]}): {keywords}")
        if profile.exclusion_keywords:
            lines.append(f"- Exclusions: {', '.join(profile.exclusion_keywords)}")
        lines.append("")

    lines.extend([
        "Assign +3 for strong, +2 for moderate, +1 for weak indicators. Ignore generic words "
        "like Name, Date, Address. Return results as normalized confidence scores (summing to "
        "100%). If all document types <40% confidence, classify as Unknown.",
        "",
        "Return ONLY valid JSON in this exact format:",
        json.dumps({
            "probable_type": matrix[0].name if matrix else "Invoice",
            "confidence_percentage": 92.4,
            "keywords_detected": [{"keyword": "INVOICE", "weight": 3, "type": "strong"}],
            "reasoning": "High presence of tax and vendor identifiers.",
        }, indent=2),
        "",
        f"Input: {ocr_text[:MAX_PROMPT_TEXT_CHARS]}",
    ])
    return "\n".join(lines)


def parse_response(content: str) -> Dict[str, Any]:
    """Parse Gemini's JSON answer, tolerating markdown code fences."""
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GeminiClassificationError(f"Gemini returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GeminiClassificationError("Gemini response is not a JSON object")
    return data


@retry_with_backoff(max_retries=3)
async def _generate(client: genai.Client, prompt: str, model: str) -> Optional[str]:
    def _call() -> types.GenerateContentResponse:
        return client.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=0.3,
                max_output_tokens=2048,
                response_mime_type="application/json",
            ),
        )

    response = await asyncio.to_thread(_call)
    return response.text if response else None


async def classify_with_gemini(
    ocr_text: str,
    client: genai.Client,
    matrix: Optional[Sequence[DocumentTypeProfile]] = None,
    model: str = "gemini-2.0-flash",
) -> ClassificationResult:
    """Classify OCR text with a Gemini prompt built from the keyword matrix.

    Raises:
        GeminiClassificationError: If the response is empty or malformed.
    """
    profiles = resolve_matrix(matrix)
    text = ocr_text.strip()
    if not text:
        return ClassificationResult(
            probable_type=UNKNOWN_TYPE,
            confidence_percentage=0.0,
            reasoning="No text content found in document",
            method="gemini",
        )

    content = await _generate(client, build_prompt(profiles, text), model)
    if not content:
        raise GeminiClassificationError("No content in Gemini response")

    try:
        verdict = GeminiVerdict.model_validate(parse_response(content))
    except ValidationError as e:
        raise GeminiClassificationError(f"Unexpected Gemini response shape: {e}") from e

    known_types = {p.name.lower(): p.name for p in profiles}
    probable_type = known_types.get(verdict.probable_type.strip().lower(), UNKNOWN_TYPE)
    confidence = min(max(verdict.confidence_percentage, 0.0), 100.0)
    if confidence < UNKNOWN_THRESHOLD:
        probable_type = UNKNOWN_TYPE

    keywords = [
        KeywordMatch(
            keyword=k.keyword,
            weight=k.weight,
            tier={3: "strong", 2: "moderate", 1: "weak"}[k.weight],  # type: ignore[arg-type]
            region="header",
            occurrences=1,
            capped_occurrences=1,
        )
        for k in verdict.keywords_detected
    ]

    logger.info("Gemini classified %d chars as %s (%.1f%%)", len(text), probable_type, confidence)
    return ClassificationResult(
        probable_type=probable_type,
        confidence_percentage=round(confidence, 2),
        keywords_detected=keywords,
        unique_keywords_count=len({k.keyword.lower() for k in keywords}),
        validation_status="PASSED" if probable_type != UNKNOWN_TYPE else "FAILED",
        text_quality=assess_text_quality(len(text), ScoringPolicy()),
        text_length=len(text),
        reasoning=verdict.reasoning,
        method="gemini",
    )
