"""
Command-line interface for the document classifier.

Usage:
    python -m app classify FILE [--matrix MATRIX.json] [--json]
    python -m app aggregate CHUNKS.json
    python -m app chunks PAGES
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from app.models.classification import ChunkSummary
from app.services.chunk_aggregator import aggregate, calculate_chunks
from app.services.document_classifier import classify
from app.services.keyword_matrix import KeywordMatrix, MatrixConfigurationError, load_matrix


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="doc-classifier",
        description="Document classifier CLI - classify OCR text with a weighted keyword matrix"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify a UTF-8 text file"
    )
    classify_parser.add_argument("file", type=str, help="Text file with OCR output")
    classify_parser.add_argument(
        "--matrix",
        "-m",
        type=str,
        default=None,
        help="JSON file with a list of document type profiles (default: built-in matrix)"
    )
    classify_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full classification result as JSON"
    )

    aggregate_parser = subparsers.add_parser(
        "aggregate",
        help="Aggregate per-chunk verdicts from a JSON file"
    )
    aggregate_parser.add_argument(
        "file",
        type=str,
        help="JSON list of {chunk_index, page_count, probable_type, confidence_percentage}"
    )

    chunks_parser = subparsers.add_parser(
        "chunks",
        help="Show how a document's pages are grouped into chunks"
    )
    chunks_parser.add_argument("pages", type=int, help="Total number of pages")

    return parser


def _load_matrix_file(path: str) -> KeywordMatrix:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("profiles", [])
    return load_matrix(raw)


def classify_command(args: argparse.Namespace) -> int:
    """Classify a text file and print the verdict."""
    try:
        text = Path(args.file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read {args.file}: {e}")
        return 1

    matrix: Optional[KeywordMatrix] = None
    if args.matrix:
        try:
            matrix = _load_matrix_file(args.matrix)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, MatrixConfigurationError) as e:
            print(f"Error: invalid keyword matrix {args.matrix}: {e}")
            return 1

    result = classify(text, matrix)

    if args.json:
        print(result.model_dump_json(indent=2))
        return 0

    print(f"Type:       {result.probable_type}")
    print(f"Confidence: {result.confidence_percentage:.2f}%")
    if result.secondary_type:
        print(f"Secondary:  {result.secondary_type} ({result.secondary_confidence:.2f}%)")
    print(f"Validation: {result.validation_status} (text quality: {result.text_quality})")
    for penalty in result.validation_penalties_applied:
        print(f"  - {penalty}")
    if result.ambiguity_warning:
        print(f"Warning:    {result.ambiguity_warning}")
    print(f"Reasoning:  {result.reasoning}")
    return 0


def aggregate_command(args: argparse.Namespace) -> int:
    """Aggregate chunk verdicts and print the final type."""
    try:
        raw = json.loads(Path(args.file).read_text(encoding="utf-8"))
        chunks = [ChunkSummary.model_validate(item) for item in raw]
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, TypeError, ValidationError) as e:
        print(f"Error: invalid chunk file {args.file}: {e}")
        return 1

    result = aggregate(chunks)
    print(result.model_dump_json(indent=2))
    return 0


def chunks_command(args: argparse.Namespace) -> int:
    """Print the chunk plan for a page count."""
    try:
        chunks = calculate_chunks(args.pages)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    for chunk in chunks:
        print(f"Chunk {chunk.chunk_index}: pages {chunk.start_page}-{chunk.end_page} ({chunk.page_count})")
    return 0


COMMANDS = {
    "classify": classify_command,
    "aggregate": aggregate_command,
    "chunks": chunks_command,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
