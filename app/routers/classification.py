"""
Document classification API endpoints.

Provides endpoints for classifying OCR text, aggregating chunk verdicts,
and uploading documents for OCR + classification.
"""

import json
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Header, HTTPException, Request, Response, UploadFile, status

from app.config import get_settings
from app.db.documents import create_document, find_document_by_hash, get_document
from app.db.keyword_matrices import get_keyword_matrix
from app.db.supabase_client import get_supabase_client
from app.middleware.rate_limit import RATE_LIMITS, get_limiter
from app.models.classification import AggregatedResult, ChunkSummary
from app.models.document import ClassifyTextRequest
from app.services.chunk_aggregator import aggregate
from app.services.document_processor import classify_text, process_document
from app.services.file_validator import validate_upload
from app.services.gemini_client import get_gemini_client
from app.services.keyword_matrix import KeywordMatrix

router = APIRouter(prefix="/api", tags=["classification"])
limiter = get_limiter()
logger = logging.getLogger(__name__)


def outcome_headers(doc_type: str, confidence: float) -> Dict[str, str]:
    """X-Doc-Type / X-Confidence headers; the type is percent-encoded (headers are Latin-1)."""
    return {
        "X-Doc-Type": quote(doc_type, safe=" "),
        "X-Confidence": str(confidence),
    }


async def load_owner_matrix(owner: Optional[str]) -> Optional[KeywordMatrix]:
    """Stored matrix for ``owner``; None (default matrix) if absent or unreadable."""
    if not owner:
        return None
    try:
        return await get_keyword_matrix(get_supabase_client(), owner)
    except (RuntimeError, ValueError) as e:
        logger.warning("Could not load keyword matrix for %s, using default: %s", owner, e)
        return None


@router.post("/classify")
@limiter.limit(RATE_LIMITS["classify"])  # type: ignore[untyped-decorator]
async def classify_ocr_text(
    request: Request,
    body: ClassifyTextRequest,
    x_matrix_owner: Optional[str] = Header(None, description="Owner of a stored keyword matrix"),
) -> Response:
    """
    Classify plain OCR text.

    Returns:
        200: ClassificationResult JSON, with X-Doc-Type and X-Confidence headers
    """
    settings = get_settings()
    strategy = body.strategy or settings.classification_strategy
    matrix = await load_owner_matrix(x_matrix_owner)

    gemini_client = None
    if strategy == "gemini":
        try:
            gemini_client = get_gemini_client()
        except ValueError as e:
            logger.warning("Gemini client unavailable: %s", e)

    result = await classify_text(body.ocr_text, matrix, strategy, gemini_client, settings.model_name)

    return Response(
        content=result.model_dump_json(),
        media_type="application/json",
        headers=outcome_headers(result.probable_type, result.confidence_percentage),
    )


@router.post("/aggregate", response_model=AggregatedResult)
@limiter.limit(RATE_LIMITS["reads"])  # type: ignore[untyped-decorator]
async def aggregate_chunks(request: Request, chunks: List[ChunkSummary]) -> AggregatedResult:
    """Merge per-chunk verdicts into one final document type."""
    return aggregate(chunks)


@router.post("/documents", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["documents"])  # type: ignore[untyped-decorator]
async def upload_document(
    request: Request,
    file: UploadFile = File(..., description="PDF or image to classify"),
    x_matrix_owner: Optional[str] = Header(None, description="Owner of a stored keyword matrix"),
) -> Response:
    """
    OCR, classify and store an uploaded document.

    This endpoint:
    1. Validates the upload (size, MIME type)
    2. Returns the stored result if the same file was already classified
    3. OCRs the file chunk by chunk (at most 3 pages per chunk)
    4. Classifies every chunk and aggregates the verdicts
    5. Stores the processed document

    Returns:
        201: Document processed (X-Document-ID header set when stored)
        200: Identical file already processed
        400: Invalid file type or empty file
        413: File too large
        422: No usable text could be extracted
    """
    settings = get_settings()
    content, mime_type, file_hash, file_name = await validate_upload(
        file, settings.max_upload_size_mb * 1024 * 1024
    )

    supabase_client = None
    try:
        supabase_client = get_supabase_client()
        existing = await find_document_by_hash(supabase_client, file_hash)
    except (RuntimeError, ValueError) as e:
        logger.warning("Duplicate check unavailable: %s", e)
        existing = None

    if existing:
        return Response(
            content=json.dumps(existing, default=str),
            media_type="application/json",
            status_code=status.HTTP_200_OK,
            headers={"X-Document-ID": str(existing["id"])},
        )

    matrix = await load_owner_matrix(x_matrix_owner)
    document = await process_document(
        content,
        mime_type,
        file_name,
        get_gemini_client(),
        matrix=matrix,
        file_hash=file_hash,
        strategy=settings.classification_strategy,
        model=settings.model_name,
        pages_per_chunk=settings.pages_per_chunk,
    )

    if document.status == "error":
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=document.error or "OCR extraction failed",
        )

    headers = outcome_headers(document.final_type, document.final_confidence)
    if supabase_client is not None:
        try:
            document.id = await create_document(supabase_client, document)
            headers["X-Document-ID"] = document.id
        except (RuntimeError, ValueError) as e:
            logger.error("Failed to store document %s: %s", file_name, e)

    return Response(
        content=document.model_dump_json(),
        media_type="application/json",
        status_code=status.HTTP_201_CREATED,
        headers=headers,
    )


@router.get("/documents/{document_id}")
@limiter.limit(RATE_LIMITS["reads"])  # type: ignore[untyped-decorator]
async def get_document_by_id(request: Request, document_id: str) -> Response:
    """
    Retrieve a processed document.

    Returns:
        200: Stored document
        400: Invalid document ID
        404: Not found
    """
    try:
        record = await get_document(get_supabase_client(), document_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    return Response(content=json.dumps(record, default=str), media_type="application/json")
