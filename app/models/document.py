"""Pydantic models for processed documents and API payloads."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.classification import ClassificationResult, UNKNOWN_TYPE


DocumentStatus = Literal["uploading", "ocr", "classifying", "finished", "error"]


class ChunkInfo(BaseModel):
    """A contiguous page range of a multi-page document (1-based, inclusive)."""

    chunk_index: int = Field(ge=1)
    start_page: int = Field(ge=1)
    end_page: int = Field(ge=1)
    page_count: int = Field(ge=1)


class ProcessedChunk(ChunkInfo):
    """A chunk together with its OCR text preview and classification."""

    ocr_text: str = Field(default="", description="First 500 characters of the OCR text")
    classification: ClassificationResult


class ProcessedDocument(BaseModel):
    """An uploaded document after OCR, classification and aggregation."""

    id: Optional[str] = None
    file_name: str
    file_hash: Optional[str] = None
    chunks: List[ProcessedChunk] = Field(default_factory=list)
    final_type: str = UNKNOWN_TYPE
    final_confidence: float = 0.0
    status: DocumentStatus = "uploading"
    error: Optional[str] = None


class ClassifyTextRequest(BaseModel):
    """Body of POST /api/classify."""

    ocr_text: str = Field(description="Plain OCR text to classify")
    strategy: Optional[Literal["keyword_matrix", "gemini"]] = Field(
        default=None,
        description="Override the configured classification strategy"
    )


class KeywordMatrixPayload(BaseModel):
    """Body of PUT /api/keyword-matrix and response of GET."""

    profiles: List[Dict[str, Any]] = Field(
        description="Document type profiles; keyword lists may be plain strings"
    )
