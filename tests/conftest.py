"""Shared fixtures for the test suite."""

import pytest

import app.db.supabase_client as supabase_module
from app.config import get_settings
from app.middleware.rate_limit import get_limiter


@pytest.fixture(autouse=True)
def env_settings(monkeypatch):
    """Provide the required settings and a fresh settings cache for every test."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-api-key")
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-supabase-key")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.delenv("CLASSIFICATION_STRATEGY", raising=False)
    monkeypatch.delenv("TRUSTED_PROXIES", raising=False)
    monkeypatch.setattr(supabase_module, "_client", None)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with empty rate limit counters."""
    get_limiter().reset()


@pytest.fixture
def invoice_text() -> str:
    """Short invoice: every indicator present but under 200 characters."""
    return "INVOICE\nGSTIN: 12ABC\nInvoice No. 445\nBuyer: X\nTotal Amount: 500"


@pytest.fixture
def long_invoice_text(invoice_text) -> str:
    """Invoice with enough line items to count as good quality text."""
    lines = [invoice_text] + ["Item 1 Widget Quantity 2 Rate 100 Amount 200"] * 12
    return "\n".join(lines)
