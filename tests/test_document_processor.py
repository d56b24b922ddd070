"""Tests for the upload processing pipeline."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.models.classification import ClassificationResult
from app.models.document import ChunkInfo
from app.services.document_processor import classify_text, process_document
from app.services.gemini_classifier import GeminiClassificationError
from app.services.ocr_extractor import OCRExtractionError


def _chunk(index: int, start: int, end: int) -> ChunkInfo:
    return ChunkInfo(chunk_index=index, start_page=start, end_page=end, page_count=end - start + 1)


class TestClassifyText:

    @pytest.mark.asyncio
    async def test_keyword_strategy(self, invoice_text):
        result = await classify_text(invoice_text)

        assert result.probable_type == "Invoice"
        assert result.method == "keyword_matrix"

    @pytest.mark.asyncio
    async def test_gemini_strategy(self, invoice_text):
        verdict = ClassificationResult(probable_type="Invoice", confidence_percentage=95.0, method="gemini")

        with patch(
            "app.services.document_processor.classify_with_gemini",
            new=AsyncMock(return_value=verdict),
        ):
            result = await classify_text(invoice_text, strategy="gemini", gemini_client=MagicMock())

        assert result is verdict

    @pytest.mark.asyncio
    async def test_gemini_failure_falls_back(self, invoice_text, caplog):
        with patch(
            "app.services.document_processor.classify_with_gemini",
            new=AsyncMock(side_effect=GeminiClassificationError("bad json")),
        ):
            result = await classify_text(invoice_text, strategy="gemini", gemini_client=MagicMock())

        assert result.method == "keyword_matrix"
        assert result.probable_type == "Invoice"
        assert "using keyword matrix" in caplog.text

    @pytest.mark.asyncio
    async def test_gemini_without_client_falls_back(self, invoice_text):
        result = await classify_text(invoice_text, strategy="gemini", gemini_client=None)

        assert result.method == "keyword_matrix"


class TestProcessDocument:

    @pytest.mark.asyncio
    async def test_single_chunk_document(self, long_invoice_text):
        ocr = AsyncMock(return_value=[(_chunk(1, 1, 2), long_invoice_text)])

        with patch("app.services.document_processor.extract_chunk_texts", new=ocr):
            document = await process_document(
                b"%PDF", "application/pdf", "bill.pdf", MagicMock(), file_hash="abc"
            )

        assert document.status == "finished"
        assert document.final_type == "Invoice"
        assert document.final_confidence == 100.0
        assert document.file_hash == "abc"
        assert len(document.chunks) == 1
        assert document.chunks[0].ocr_text == long_invoice_text[:500]

    @pytest.mark.asyncio
    async def test_mixed_chunks(self, long_invoice_text):
        ocr = AsyncMock(return_value=[
            (_chunk(1, 1, 3), long_invoice_text),
            (_chunk(2, 4, 6), "lorem ipsum dolor sit amet " * 5),
        ])

        with patch("app.services.document_processor.extract_chunk_texts", new=ocr):
            document = await process_document(b"%PDF", "application/pdf", "scan.pdf", MagicMock())

        # 100 vs 0 confidence: std-dev 50
        assert document.final_type == "Mixed Document"
        assert document.final_confidence == 50.0
        assert [c.classification.probable_type for c in document.chunks] == ["Invoice", "Unknown"]

    @pytest.mark.asyncio
    async def test_ocr_failure_sets_error_status(self):
        ocr = AsyncMock(side_effect=OCRExtractionError("No text content found"))

        with patch("app.services.document_processor.extract_chunk_texts", new=ocr):
            document = await process_document(b"img", "image/png", "blank.png", MagicMock())

        assert document.status == "error"
        assert document.error == "No text content found"
        assert document.chunks == []
