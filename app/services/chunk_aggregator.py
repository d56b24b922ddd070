"""Chunk planning and aggregation for multi-page documents.

Long documents are split into chunks of at most three pages; each chunk is
classified on its own and the per-chunk verdicts are merged here into one
final type and confidence.
"""

import math
from typing import Dict, List, Sequence, Union

from app.models.classification import (
    AggregatedResult,
    ChunkResult,
    ChunkSummary,
    MIXED_DOCUMENT_TYPE,
    UNKNOWN_TYPE,
)
from app.models.document import ChunkInfo

PAGES_PER_CHUNK = 3
MIXED_STD_DEV_THRESHOLD = 20.0
UNKNOWN_CONFIDENCE_THRESHOLD = 40.0


def calculate_chunks(total_pages: int, pages_per_chunk: int = PAGES_PER_CHUNK) -> List[ChunkInfo]:
    """Group pages into consecutive chunks of at most ``pages_per_chunk`` pages.

    Raises:
        ValueError: If ``total_pages`` or ``pages_per_chunk`` is not positive.
    """
    if total_pages < 1:
        raise ValueError(f"total_pages must be positive, got {total_pages}")
    if pages_per_chunk < 1:
        raise ValueError(f"pages_per_chunk must be positive, got {pages_per_chunk}")

    chunks: List[ChunkInfo] = []
    start = 1
    while start <= total_pages:
        end = min(start + pages_per_chunk - 1, total_pages)
        chunks.append(ChunkInfo(
            chunk_index=len(chunks) + 1,
            start_page=start,
            end_page=end,
            page_count=end - start + 1,
        ))
        start = end + 1
    return chunks


def _population_std_dev(values: Sequence[float]) -> float:
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def aggregate(chunks: Sequence[Union[ChunkSummary, ChunkResult]]) -> AggregatedResult:
    """Merge per-chunk classifications into one verdict.

    Each chunk's confidence is weighted by its share of the total pages and
    accumulated per document type; the best type wins. High disagreement
    between chunks (population std-dev of confidences above 20) marks the
    document as mixed, and a weak winner becomes "Unknown".
    """
    summaries = [c.summary() if isinstance(c, ChunkResult) else c for c in chunks]

    if not summaries:
        return AggregatedResult(final_type=UNKNOWN_TYPE, final_confidence=0.0)

    if len(summaries) == 1:
        only = summaries[0]
        return AggregatedResult(
            final_type=only.probable_type,
            final_confidence=only.confidence_percentage,
        )

    total_pages = sum(c.page_count for c in summaries)
    type_scores: Dict[str, float] = {}
    for chunk in summaries:
        # Zero-page chunks carry no weight; spread evenly if every chunk is empty
        weight = chunk.page_count / total_pages if total_pages else 1 / len(summaries)
        type_scores[chunk.probable_type] = (
            type_scores.get(chunk.probable_type, 0.0) + chunk.confidence_percentage * weight
        )

    max_type = UNKNOWN_TYPE
    max_score = 0.0
    for doc_type, score in type_scores.items():
        if score > max_score:
            max_type = doc_type
            max_score = score

    std_dev = _population_std_dev([c.confidence_percentage for c in summaries])
    if std_dev > MIXED_STD_DEV_THRESHOLD:
        return AggregatedResult(final_type=MIXED_DOCUMENT_TYPE, final_confidence=max_score)

    if max_score < UNKNOWN_CONFIDENCE_THRESHOLD:
        return AggregatedResult(final_type=UNKNOWN_TYPE, final_confidence=max_score)

    return AggregatedResult(final_type=max_type, final_confidence=max_score)
