"""
File validation for document uploads.

Provides security checks including:
- File size limits
- MIME type validation (PDF and common image formats)
- Filename sanitization
- Content hash calculation for deduplication
"""

import hashlib
import re
from pathlib import Path
from typing import Tuple

import magic
from fastapi import HTTPException, UploadFile

# Constants
DEFAULT_MAX_FILE_SIZE = 20 * 1024 * 1024  # 20MB, Gemini inline data limit
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
}


async def validate_upload(
    file: UploadFile,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> Tuple[bytes, str, str, str]:
    """
    Validate an uploaded document and return content, MIME type, hash and filename.

    Args:
        file: FastAPI UploadFile instance from multipart/form-data
        max_file_size: Maximum accepted size in bytes

    Returns:
        Tuple of (file_content, mime_type, sha256_hash, sanitized_filename)

    Raises:
        HTTPException: 400 for validation errors, 413 for file too large
    """
    content = await file.read()

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > max_file_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_file_size // (1024 * 1024)}MB"
        )

    # Trust the content, not the client-supplied content type
    mime_type = magic.from_buffer(content, mime=True)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type {mime_type}. Please upload PDF or image files only"
        )

    sanitized_filename = sanitize_filename(file.filename or "upload")
    file_hash = hashlib.sha256(content).hexdigest()

    return content, mime_type, file_hash, sanitized_filename


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal attacks.

    Security:
        - Removes directory components and parent references
        - Removes null bytes
        - Limits to alphanumeric, dash, underscore, dot
        - Limits length to 255 characters, keeping the extension
    """
    filename = Path(filename.replace("\\", "/")).name
    filename = filename.replace("..", "").replace("\0", "")
    filename = re.sub(r'[^a-zA-Z0-9._-]', '_', filename)

    if not filename.strip("._"):
        filename = "upload"

    if len(filename) > 255:
        stem, dot, suffix = filename.rpartition(".")
        if dot and len(suffix) <= 10:
            filename = stem[:254 - len(suffix)] + "." + suffix
        else:
            filename = filename[:255]

    return filename
