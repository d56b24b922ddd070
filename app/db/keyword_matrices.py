"""Database functions for per-owner keyword matrix snapshots.

Every edit inserts a new row into ``keyword_matrices``; the newest row for
an owner is the active matrix. Rows are never updated in place, so a
snapshot read by an in-flight classification cannot change under it.
"""

import asyncio
import logging
from typing import Optional, Sequence

from supabase import Client

from app.models.classification import DocumentTypeProfile
from app.services.keyword_matrix import (
    KeywordMatrix,
    MatrixConfigurationError,
    load_matrix,
    matrix_to_dict,
)

logger = logging.getLogger(__name__)


async def get_keyword_matrix(client: Client, owner: str) -> Optional[KeywordMatrix]:
    """Load the newest matrix snapshot for ``owner``.

    Returns:
        The matrix, or None if the owner has none stored (or the stored one
        is no longer valid), in which case callers use the default matrix.

    Raises:
        RuntimeError: If the query fails
    """
    try:
        response = await asyncio.to_thread(
            lambda: client.table('keyword_matrices')
            .select('profiles')
            .eq('owner', owner)
            .order('created_at', desc=True)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to load keyword matrix: {str(e)}") from e

    if not response.data:
        return None

    try:
        return load_matrix(response.data[0]['profiles'] or [])
    except MatrixConfigurationError as e:
        logger.warning("Stored keyword matrix for %s is invalid, using default: %s", owner, e)
        return None


async def save_keyword_matrix(
    client: Client,
    owner: str,
    matrix: Sequence[DocumentTypeProfile],
) -> str:
    """Store a new matrix snapshot for ``owner`` and return its row ID.

    Raises:
        RuntimeError: If the insert fails
    """
    record = {
        'owner': owner,
        'profiles': matrix_to_dict(matrix),
    }
    try:
        response = await asyncio.to_thread(
            lambda: client.table('keyword_matrices').insert(record).execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to save keyword matrix: {str(e)}") from e

    if not response.data:
        raise RuntimeError("Insert returned no data")
    return str(response.data[0]['id'])
