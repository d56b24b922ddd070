"""
Keyword matrix API endpoints.

A caller's matrix is identified by the X-Matrix-Owner header. Saving a
matrix stores a new snapshot; classifications already running keep the
snapshot they loaded.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Header, HTTPException, Request, status

from app.db.keyword_matrices import save_keyword_matrix
from app.db.supabase_client import get_supabase_client
from app.middleware.rate_limit import RATE_LIMITS, get_limiter
from app.models.document import KeywordMatrixPayload
from app.routers.classification import load_owner_matrix
from app.services.keyword_matrix import (
    DEFAULT_MATRIX,
    MatrixConfigurationError,
    load_matrix,
    matrix_to_dict,
)

router = APIRouter(prefix="/api", tags=["keyword-matrix"])
limiter = get_limiter()
logger = logging.getLogger(__name__)


@router.get("/keyword-matrix")
@limiter.limit(RATE_LIMITS["reads"])  # type: ignore[untyped-decorator]
async def get_matrix(
    request: Request,
    x_matrix_owner: Optional[str] = Header(None),
) -> Dict[str, Any]:
    """Return the effective keyword matrix for the caller."""
    matrix = await load_owner_matrix(x_matrix_owner)
    return {
        "owner": x_matrix_owner,
        "source": "stored" if matrix else "default",
        "profiles": matrix_to_dict(matrix or DEFAULT_MATRIX),
    }


@router.put("/keyword-matrix")
@limiter.limit(RATE_LIMITS["matrix_writes"])  # type: ignore[untyped-decorator]
async def put_matrix(
    request: Request,
    payload: KeywordMatrixPayload,
    x_matrix_owner: Optional[str] = Header(None),
) -> Dict[str, Any]:
    """
    Validate and store a new keyword matrix snapshot.

    Returns:
        200: Stored matrix with snapshot ID
        400: Missing X-Matrix-Owner header
        422: Invalid matrix configuration
    """
    if not x_matrix_owner:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Matrix-Owner header is required to store a keyword matrix",
        )
    if not payload.profiles:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A keyword matrix needs at least one document type profile",
        )

    try:
        matrix = load_matrix(payload.profiles)
    except MatrixConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    try:
        snapshot_id = await save_keyword_matrix(get_supabase_client(), x_matrix_owner, matrix)
    except (RuntimeError, ValueError) as e:
        logger.error("Failed to store keyword matrix for %s: %s", x_matrix_owner, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return {
        "id": snapshot_id,
        "owner": x_matrix_owner,
        "profiles": matrix_to_dict(matrix),
    }
