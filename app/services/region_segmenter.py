"""Split document text into header, body and footer regions.

The three regions form a single non-overlapping partition of the text:
the header takes the first ``header_chars`` characters, the footer the
last ``footer_chars`` of what remains, and the body whatever lies between
(empty for short texts).
"""

from dataclasses import dataclass

from app.models.classification import ScoringPolicy


@dataclass(frozen=True)
class TextRegion:
    name: str
    start: int
    end: int
    text: str


@dataclass(frozen=True)
class SegmentedText:
    text: str
    header: TextRegion
    body: TextRegion
    footer: TextRegion

    def region_at(self, offset: int) -> str:
        """Name of the region containing character ``offset``."""
        if offset < self.header.end:
            return "header"
        if offset < self.body.end:
            return "body"
        return "footer"


def segment_text(text: str, policy: ScoringPolicy | None = None) -> SegmentedText:
    policy = policy or ScoringPolicy()
    n = len(text)
    header_end = min(policy.header_chars, n)
    footer_start = max(header_end, n - policy.footer_chars)

    return SegmentedText(
        text=text,
        header=TextRegion("header", 0, header_end, text[:header_end]),
        body=TextRegion("body", header_end, footer_start, text[header_end:footer_start]),
        footer=TextRegion("footer", footer_start, n, text[footer_start:]),
    )
