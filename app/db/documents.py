"""Database functions for processed documents.

Each uploaded document is stored once in the ``documents`` table together
with its per-chunk classifications and the aggregated verdict.
"""

import asyncio
from typing import Any, Dict, Optional
from uuid import UUID

from supabase import Client

from app.models.document import ProcessedDocument

VALID_STATUSES = ["uploading", "ocr", "classifying", "finished", "error"]


async def create_document(client: Client, document: ProcessedDocument) -> str:
    """Insert a processed document.

    Args:
        client: Supabase client instance
        document: Document with chunks, final type and status

    Returns:
        str: UUID of the created record

    Raises:
        ValueError: If the document status is invalid
        RuntimeError: If the insert fails
    """
    if document.status not in VALID_STATUSES:
        raise ValueError(f"Invalid status '{document.status}'. Must be one of: {', '.join(VALID_STATUSES)}")

    record = {
        'file_name': document.file_name,
        'file_hash': document.file_hash,
        'status': document.status,
        'final_type': document.final_type,
        'final_confidence': document.final_confidence,
        'chunks': [chunk.model_dump(mode='json') for chunk in document.chunks],
        'error_message': document.error,
    }

    try:
        response = await asyncio.to_thread(
            lambda: client.table('documents').insert(record).execute()
        )
        if not response.data:
            raise RuntimeError("Insert returned no data")
        return str(response.data[0]['id'])
    except RuntimeError:
        raise
    except Exception as e:
        raise RuntimeError(f"Failed to insert document: {str(e)}") from e


async def get_document(client: Client, document_id: str) -> Optional[Dict[str, Any]]:
    """Retrieve a document record by ID.

    Returns:
        The record as a dictionary, or None if not found

    Raises:
        ValueError: If document_id is not a valid UUID
        RuntimeError: If the query fails
    """
    try:
        UUID(document_id)
    except ValueError:
        raise ValueError(f"Invalid UUID format: {document_id}")

    try:
        response = await asyncio.to_thread(
            lambda: client.table('documents').select('*').eq('id', document_id).execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to retrieve document: {str(e)}") from e

    if not response.data:
        return None
    result: Dict[str, Any] = response.data[0]
    return result


async def find_document_by_hash(client: Client, file_hash: str) -> Optional[Dict[str, Any]]:
    """Return the most recent finished document with this file hash, if any."""
    try:
        response = await asyncio.to_thread(
            lambda: client.table('documents')
            .select('*')
            .eq('file_hash', file_hash)
            .eq('status', 'finished')
            .order('created_at', desc=True)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to check duplicate: {str(e)}") from e

    if not response.data:
        return None
    result: Dict[str, Any] = response.data[0]
    return result
