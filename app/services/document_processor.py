"""Document processing pipeline.

Upload bytes -> OCR per chunk -> classification per chunk -> aggregation.
OCR and generative classification are the only suspending steps; the
keyword-matrix engine runs synchronously.
"""

import logging
from typing import Optional, Sequence

from google import genai

from app.models.classification import ChunkResult, ClassificationResult, DocumentTypeProfile
from app.models.document import ProcessedChunk, ProcessedDocument
from app.services.chunk_aggregator import PAGES_PER_CHUNK, aggregate
from app.services.document_classifier import classify
from app.services.gemini_classifier import GeminiClassificationError, classify_with_gemini
from app.services.ocr_extractor import OCRExtractionError, extract_chunk_texts

logger = logging.getLogger(__name__)

OCR_PREVIEW_CHARS = 500


async def classify_text(
    ocr_text: str,
    matrix: Optional[Sequence[DocumentTypeProfile]] = None,
    strategy: str = "keyword_matrix",
    gemini_client: Optional[genai.Client] = None,
    model: str = "gemini-2.0-flash",
) -> ClassificationResult:
    """Classify text with the requested strategy.

    The Gemini strategy falls back to the keyword-matrix engine when no
    client is available or the call fails.
    """
    if strategy == "gemini" and gemini_client is not None:
        try:
            return await classify_with_gemini(ocr_text, gemini_client, matrix, model)
        except GeminiClassificationError as e:
            logger.warning("Gemini classification failed, using keyword matrix: %s", e)
        except Exception as e:
            logger.warning(
                "Gemini classification error (%s), using keyword matrix: %s",
                type(e).__name__, e,
            )
    elif strategy == "gemini":
        logger.warning("Gemini strategy requested without a client, using keyword matrix")

    return classify(ocr_text, matrix)


async def process_document(
    content: bytes,
    mime_type: str,
    file_name: str,
    gemini_client: genai.Client,
    matrix: Optional[Sequence[DocumentTypeProfile]] = None,
    file_hash: Optional[str] = None,
    strategy: str = "keyword_matrix",
    model: str = "gemini-2.0-flash",
    pages_per_chunk: int = PAGES_PER_CHUNK,
) -> ProcessedDocument:
    """OCR, classify and aggregate one uploaded document.

    OCR failures do not raise: the returned document has status "error"
    and the failure message.
    """
    document = ProcessedDocument(file_name=file_name, file_hash=file_hash, status="ocr")

    try:
        chunk_texts = await extract_chunk_texts(
            gemini_client, content, mime_type, model, pages_per_chunk
        )
    except OCRExtractionError as e:
        logger.warning("OCR failed for %s: %s", file_name, e)
        document.status = "error"
        document.error = str(e)
        return document

    document.status = "classifying"
    chunk_results = []
    for chunk, text in chunk_texts:
        classification = await classify_text(text, matrix, strategy, gemini_client, model)
        chunk_results.append(ChunkResult(
            chunk_index=chunk.chunk_index,
            page_count=chunk.page_count,
            classification=classification,
        ))
        document.chunks.append(ProcessedChunk(
            **chunk.model_dump(),
            ocr_text=text[:OCR_PREVIEW_CHARS],
            classification=classification,
        ))

    final = aggregate(chunk_results)
    document.final_type = final.final_type
    document.final_confidence = round(final.final_confidence, 2)
    document.status = "finished"

    logger.info(
        "Processed %s: %d chunk(s), %s (%.2f%%)",
        file_name, len(document.chunks), document.final_type, document.final_confidence,
    )
    return document
