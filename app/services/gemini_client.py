"""Gemini API client factory.

Gemini is used for two optional steps around the classification engine:
OCR text extraction from uploads and the generative classification
strategy. The keyword-matrix engine itself never needs a client.
"""

from google import genai

from app.config import get_settings


def get_gemini_client() -> genai.Client:
    """Create a Gemini client from the application settings.

    Returns:
        genai.Client: Client ready for ``models.generate_content`` calls.

    Raises:
        ValueError: If GEMINI_API_KEY is missing (settings validation).
    """
    settings = get_settings()
    if not settings.gemini_api_key:
        raise ValueError(
            "GEMINI_API_KEY not set in environment. "
            "Please set this variable in your .env file or environment."
        )
    return genai.Client(api_key=settings.gemini_api_key)
