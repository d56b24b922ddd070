"""Keyword search over segmented text.

Matching is a case-insensitive substring search (not whole-word), so
"INVOICE" is found inside "TAX INVOICE". Every occurrence is attributed
to the region its first character falls in.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from app.models.classification import DocumentTypeProfile, KeywordEntry, KeywordMatch
from app.services.region_segmenter import SegmentedText


@dataclass
class ProfileMatches:
    """All keyword evidence for one document type."""

    matches: List[KeywordMatch] = field(default_factory=list)
    entries: Dict[str, KeywordEntry] = field(default_factory=dict)
    total_occurrences: Dict[str, int] = field(default_factory=dict)

    @property
    def unique_keywords(self) -> List[str]:
        return [kw for kw, count in self.total_occurrences.items() if count > 0]


def find_occurrences(haystack: str, needle: str) -> List[int]:
    """Start offsets of non-overlapping occurrences of ``needle`` (case-insensitive).

    Offsets index ``haystack`` unchanged, even where lowercasing would
    change its length ("İ" lowercases to two code points).
    """
    if not needle:
        return []
    pattern = re.compile(re.escape(needle), re.IGNORECASE)
    return [m.start() for m in pattern.finditer(haystack)]


def contains_keyword(haystack_lower: str, needle: str) -> bool:
    needle_lower = needle.strip().lower()
    return bool(needle_lower) and needle_lower in haystack_lower


def _unique_entries(entries: Iterable[KeywordEntry]) -> List[KeywordEntry]:
    """Drop repeated keyword texts, keeping the first (strongest-tier) entry."""
    seen: set[str] = set()
    unique: List[KeywordEntry] = []
    for entry in entries:
        key = entry.text.lower()
        if not key.strip() or key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def match_profile(
    profile: DocumentTypeProfile,
    segmented: SegmentedText,
    occurrence_cap: int = 3,
) -> ProfileMatches:
    """Find every keyword of ``profile`` in the segmented text.

    Occurrences are capped per keyword (not per region): only the first
    ``occurrence_cap`` occurrences in reading order count toward the score,
    while the raw counts are still reported.

    Returns matches ordered by first-seen position, one per
    (keyword, region) pair.
    """
    result = ProfileMatches()
    ordered: List[Tuple[int, int, KeywordMatch]] = []

    for entry_order, entry in enumerate(_unique_entries(profile.keywords)):
        offsets = find_occurrences(segmented.text, entry.text)
        result.total_occurrences[entry.text] = len(offsets)
        if not offsets:
            continue
        result.entries[entry.text] = entry

        # region -> [first offset, raw count, capped count]
        per_region: Dict[str, List[int]] = {}
        for position, offset in enumerate(offsets):
            region = segmented.region_at(offset)
            stats = per_region.setdefault(region, [offset, 0, 0])
            stats[1] += 1
            if position < occurrence_cap:
                stats[2] += 1

        for region, (first_offset, raw_count, capped_count) in per_region.items():
            ordered.append((
                first_offset,
                entry_order,
                KeywordMatch(
                    keyword=entry.text,
                    weight=entry.weight,
                    tier=entry.tier,
                    region=region,  # type: ignore[arg-type]
                    occurrences=raw_count,
                    capped_occurrences=capped_count,
                ),
            ))

    ordered.sort(key=lambda item: (item[0], item[1]))
    result.matches = [match for _, _, match in ordered]
    return result
