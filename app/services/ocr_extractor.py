"""OCR text extraction with the Gemini vision API.

PDFs longer than one chunk are split with pypdf so that each page range
is read separately and can be classified on its own.
"""

import asyncio
import io
import logging
from typing import List, Optional, Tuple

from google import genai
from google.genai import types
from pypdf import PdfReader, PdfWriter

from app.models.document import ChunkInfo
from app.services.chunk_aggregator import PAGES_PER_CHUNK, calculate_chunks
from app.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
MIN_OCR_TEXT_LENGTH = 10

OCR_PROMPT = (
    "Extract all text from this document. Return the complete text content without "
    "any formatting, explanations, or additional commentary. Just the raw extracted text."
)


class OCRExtractionError(Exception):
    """Raised when no usable text could be extracted from a document."""


def count_pdf_pages(content: bytes) -> int:
    """Number of pages in a PDF.

    Raises:
        OCRExtractionError: If the PDF cannot be parsed.
    """
    try:
        pages = len(PdfReader(io.BytesIO(content)).pages)
    except Exception as e:
        raise OCRExtractionError(f"Could not read PDF: {e}") from e
    if pages == 0:
        raise OCRExtractionError("PDF has no pages")
    return pages


def split_pdf(content: bytes, chunks: List[ChunkInfo]) -> List[bytes]:
    """Write one PDF per chunk containing that chunk's pages."""
    reader = PdfReader(io.BytesIO(content))
    parts: List[bytes] = []
    for chunk in chunks:
        writer = PdfWriter()
        for page_number in range(chunk.start_page, chunk.end_page + 1):
            writer.add_page(reader.pages[page_number - 1])
        buffer = io.BytesIO()
        writer.write(buffer)
        parts.append(buffer.getvalue())
    return parts


@retry_with_backoff(max_retries=3)
async def _generate_text(
    client: genai.Client,
    content: bytes,
    mime_type: str,
    model: str,
) -> Optional[str]:
    def _call() -> types.GenerateContentResponse:
        return client.models.generate_content(
            model=model,
            contents=[
                OCR_PROMPT,
                types.Part.from_bytes(data=content, mime_type=mime_type),
            ],
            config=types.GenerateContentConfig(
                temperature=0.1,
                max_output_tokens=8192,
            ),
        )

    response = await asyncio.to_thread(_call)
    return response.text if response else None


async def extract_text(
    client: genai.Client,
    content: bytes,
    mime_type: str,
    model: str = "gemini-2.0-flash",
) -> str:
    """Extract the raw text of a PDF or image with Gemini.

    Args:
        client: Gemini API client
        content: File bytes
        mime_type: MIME type of ``content`` (application/pdf or image/*)
        model: Gemini model name

    Returns:
        Extracted text

    Raises:
        OCRExtractionError: If the response is empty or has fewer than
            10 non-blank characters
    """
    text = await _generate_text(client, content, mime_type, model)

    if not text or not text.strip():
        raise OCRExtractionError(
            "No text content found in the document. The file may be empty "
            "or contain only images without text."
        )
    if len(text.strip()) < MIN_OCR_TEXT_LENGTH:
        raise OCRExtractionError(
            f"Document contains insufficient text content (less than {MIN_OCR_TEXT_LENGTH} "
            "characters). Please upload a document with readable text."
        )

    logger.info("Extracted %d characters of text (%s)", len(text), mime_type)
    return text


async def extract_chunk_texts(
    client: genai.Client,
    content: bytes,
    mime_type: str,
    model: str = "gemini-2.0-flash",
    pages_per_chunk: int = PAGES_PER_CHUNK,
) -> List[Tuple[ChunkInfo, str]]:
    """OCR a document chunk by chunk.

    Images are a single one-page chunk. PDFs are planned with
    ``calculate_chunks`` and each chunk is OCR'd sequentially.
    """
    if mime_type != PDF_MIME_TYPE:
        chunk = ChunkInfo(chunk_index=1, start_page=1, end_page=1, page_count=1)
        return [(chunk, await extract_text(client, content, mime_type, model))]

    chunks = calculate_chunks(count_pdf_pages(content), pages_per_chunk)
    if len(chunks) == 1:
        return [(chunks[0], await extract_text(client, content, mime_type, model))]

    results: List[Tuple[ChunkInfo, str]] = []
    for chunk, part in zip(chunks, split_pdf(content, chunks)):
        logger.info(
            "OCR chunk %d/%d (pages %d-%d)",
            chunk.chunk_index, len(chunks), chunk.start_page, chunk.end_page,
        )
        results.append((chunk, await extract_text(client, part, mime_type, model)))
    return results
