"""Keyword matrix configuration.

The matrix is an immutable tuple of ``DocumentTypeProfile`` snapshots.
Saving a matrix stores a new snapshot rather than editing the old one,
so a classification already in flight keeps the snapshot it started with.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from app.models.classification import DocumentTypeProfile

logger = logging.getLogger(__name__)

KeywordMatrix = Tuple[DocumentTypeProfile, ...]


class MatrixConfigurationError(ValueError):
    """Raised when raw matrix configuration cannot be turned into profiles."""


def _kw(text: str, header: float = 1.0, body: float = 1.0, footer: float = 1.0) -> Dict[str, Any]:
    return {
        "text": text,
        "header_multiplier": header,
        "body_multiplier": body,
        "footer_multiplier": footer,
    }


# Titles and form names carry most weight at the top of a page; the
# transactional vocabulary of bank statements and invoices is spread over
# the body, and footers mostly repeat boilerplate.
_DEFAULT_MATRIX_CONFIG: List[Dict[str, Any]] = [
    {
        "name": "Resume",
        "strong": [
            _kw("Resume Objective", header=1.5),
            _kw("Work Experience"),
            _kw("Education"),
            _kw("Skills and Certifications"),
        ],
        "moderate": [
            _kw("LinkedIn", header=1.5, footer=0.8),
            _kw("Email:", header=1.5, footer=0.8),
            _kw("Phone:", header=1.5, footer=0.8),
        ],
        "weak": ["Hobbies and Interests", "Projects"],
        "exclusion_keywords": ["Invoice", "GSTIN", "Statement of Account", "Assessment Year", "Marks Obtained"],
        "exclusion_penalty_percent": 50,
        "mandatory_fields": {
            "description": "A resume must show at least 2 of: contact details, work history, education",
            "min_satisfied": 2,
            "conditions": [
                {
                    "name": "Contact Details",
                    "keywords": ["Email", "Phone", "LinkedIn", "Mobile", "@"],
                    "rationale": "a resume identifies how to reach the candidate",
                },
                {
                    "name": "Work History",
                    "keywords": ["Work Experience", "Experience", "Employment"],
                    "rationale": "a resume summarises the candidate's employment",
                },
                {
                    "name": "Education",
                    "keywords": ["Education", "Qualification", "Degree"],
                    "rationale": "a resume lists the candidate's qualifications",
                },
            ],
        },
    },
    {
        "name": "ITR",
        "strong": [
            _kw("INDIAN INCOME TAX RETURN", header=1.5),
            _kw("ITR-1 SAHAJ", header=1.5),
            _kw("PART A GENERAL INFORMATION"),
        ],
        "moderate": ["Assessment Year", "PAN", "Verification"],
        "weak": ["Deductions", "Income from Salaries"],
        "exclusion_keywords": ["Invoice No", "Work Experience", "Statement of Account", "Marks Obtained"],
        "exclusion_penalty_percent": 50,
        "mandatory_fields": {
            "description": "A tax return must show at least 2 of: assessment year, PAN, return form",
            "min_satisfied": 2,
            "conditions": [
                {
                    "name": "Assessment Year",
                    "keywords": ["Assessment Year", "A.Y."],
                    "rationale": "every return is filed for a specific assessment year",
                },
                {
                    "name": "PAN",
                    "keywords": ["PAN"],
                    "rationale": "the return is tied to the taxpayer's permanent account number",
                },
                {
                    "name": "Return Form",
                    "keywords": ["ITR-", "INCOME TAX RETURN", "ACKNOWLEDGEMENT"],
                    "rationale": "the form name identifies the filing itself",
                },
            ],
        },
    },
    {
        "name": "Bank Statement",
        "strong": [
            _kw("STATEMENT OF ACCOUNT", header=1.5),
            _kw("Account Number", header=1.2),
            _kw("Statement Period", header=1.2),
        ],
        "moderate": [
            _kw("Deposit", body=1.2),
            _kw("Withdrawal", body=1.2),
            _kw("Balance", body=1.2),
        ],
        "weak": ["Transaction Date", "Customer Name"],
        "exclusion_keywords": ["Invoice No", "GSTIN", "Work Experience", "Marks Obtained", "ITR-"],
        "exclusion_penalty_percent": 50,
        "mandatory_fields": {
            "description": "A bank statement must show at least 2 of: account number, statement period, transactions",
            "min_satisfied": 2,
            "conditions": [
                {
                    "name": "Account Number",
                    "keywords": ["Account Number", "Account No", "A/C No"],
                    "rationale": "a statement belongs to one identified account",
                },
                {
                    "name": "Statement Period",
                    "keywords": ["Statement Period", "Period", "From Date"],
                    "rationale": "a statement covers a defined date range",
                },
                {
                    "name": "Transactions",
                    "keywords": ["Deposit", "Withdrawal", "Debit", "Credit", "Balance"],
                    "rationale": "a statement lists account movements",
                },
            ],
        },
    },
    {
        "name": "Invoice",
        "strong": [
            _kw("INVOICE", header=1.5),
            _kw("Tax Invoice", header=1.5),
            _kw("GSTIN", header=1.2),
            _kw("Invoice No.", header=1.2),
        ],
        "moderate": [
            _kw("Buyer"),
            _kw("Vendor"),
            _kw("Total Amount", footer=1.2),
            _kw("Terms and Conditions", footer=1.2),
        ],
        "weak": ["Quantity", "Rate", "Amount"],
        "exclusion_keywords": ["Work Experience", "Statement of Account", "Marks Obtained", "Assessment Year"],
        "exclusion_penalty_percent": 50,
        "mandatory_fields": {
            "description": "An invoice must show at least 2 of: invoice number, total, counterparty",
            "min_satisfied": 2,
            "conditions": [
                {
                    "name": "Invoice Number",
                    "keywords": ["Invoice No", "Invoice Number", "Bill No"],
                    "rationale": "an invoice is referenced by its unique number",
                },
                {
                    "name": "Total Amount",
                    "keywords": ["Total Amount", "Grand Total", "Total"],
                    "rationale": "an invoice states the amount payable",
                },
                {
                    "name": "Counterparty",
                    "keywords": ["Buyer", "Vendor", "Seller", "Bill To", "GSTIN"],
                    "rationale": "an invoice names who is billed or who bills",
                },
            ],
        },
    },
    {
        "name": "Marksheet",
        "strong": [
            _kw("STATEMENT OF MARKS", header=1.5),
            _kw("BOARD OF SECONDARY EDUCATION", header=1.5),
            _kw("Division"),
        ],
        "moderate": ["Subject", "Marks Obtained", "Roll No."],
        "weak": ["Total Marks", "Percentage", "Result"],
        "exclusion_keywords": ["Invoice", "GSTIN", "Work Experience", "Statement of Account"],
        "exclusion_penalty_percent": 50,
        "mandatory_fields": {
            "description": "A marksheet must show at least 2 of: roll number, subject marks, result",
            "min_satisfied": 2,
            "conditions": [
                {
                    "name": "Roll Number",
                    "keywords": ["Roll No", "Roll Number", "Seat No"],
                    "rationale": "a marksheet identifies the examinee",
                },
                {
                    "name": "Subject Marks",
                    "keywords": ["Marks Obtained", "Subject", "Max Marks"],
                    "rationale": "a marksheet reports marks per subject",
                },
                {
                    "name": "Result",
                    "keywords": ["Result", "Division", "Percentage", "Grade"],
                    "rationale": "a marksheet states the overall outcome",
                },
            ],
        },
    },
]


def load_matrix(raw_profiles: Iterable[Any]) -> KeywordMatrix:
    """Validate raw profile configuration into an immutable matrix.

    Accepts dicts (keyword lists may hold plain strings or entry objects)
    or already-built ``DocumentTypeProfile`` instances. Missing multipliers
    default to 1.0.

    Raises:
        MatrixConfigurationError: On invalid weights/tiers, penalty out of
            range, or duplicate document type names.
    """
    profiles: List[DocumentTypeProfile] = []
    seen: set[str] = set()
    for raw in raw_profiles:
        if isinstance(raw, DocumentTypeProfile):
            profile = raw
        else:
            try:
                profile = DocumentTypeProfile.model_validate(raw)
            except ValidationError as e:
                name = raw.get("name", "<unnamed>") if isinstance(raw, dict) else "<unnamed>"
                raise MatrixConfigurationError(f"Invalid profile '{name}': {e}") from e
        key = profile.name.strip().lower()
        if key in seen:
            raise MatrixConfigurationError(f"Duplicate document type '{profile.name}'")
        seen.add(key)
        profiles.append(profile)
    return tuple(profiles)


DEFAULT_MATRIX: KeywordMatrix = load_matrix(_DEFAULT_MATRIX_CONFIG)


def resolve_matrix(matrix: Optional[Sequence[DocumentTypeProfile]]) -> KeywordMatrix:
    """Return ``matrix`` as a tuple, or the built-in default if none is configured."""
    if not matrix:
        logger.info("No keyword matrix configured, using built-in default")
        return DEFAULT_MATRIX
    return tuple(matrix)


def matrix_to_dict(matrix: Sequence[DocumentTypeProfile]) -> List[Dict[str, Any]]:
    """Serialize a matrix for storage or API responses."""
    return [profile.model_dump(mode="json") for profile in matrix]
