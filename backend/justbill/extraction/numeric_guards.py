"""Numeric Guardrails for Medical Bill Extraction.

Prevents phone numbers, tax IDs, dates and other non-monetary numeric
sequences from being read as item names or prices.

Design principles:
- Reject suspect patterns BEFORE they pollute downstream logic.
- Sanity caps prevent absurd unit prices (e.g. a phone number read as ₹9876543210).
- Amount parsing never raises; unreadable input is simply None.
"""

from __future__ import annotations

import os
import re
from typing import Any, Optional

from justbill.extraction.lexicons import (
    GSTIN_LIKE_PATTERN,
    NUMERIC_ONLY_PATTERN,
    PHONE_PATTERNS,
)

# =============================================================================
# Sanity Caps
# =============================================================================
MAX_PLAUSIBLE_UNIT_PRICE = float(os.getenv("MAX_PLAUSIBLE_UNIT_PRICE", "100000"))
GRAND_TOTAL_TOLERANCE = float(os.getenv("GRAND_TOTAL_TOLERANCE", "1.0"))


# =============================================================================
# Suspect Numeric Patterns
# =============================================================================
SUSPECT_PATTERNS = [
    # Phone numbers (Indian): 10 digits starting with 6-9
    (r"^[6-9]\d{9}$", "phone_number"),

    # Phone with country code
    (r"^\+?91[-\s]?[6-9]\d{9}$", "phone_number"),

    # Landline with STD code: 022-12345678
    (r"^0\d{2,4}[-\s]?\d{6,8}$", "phone_number"),

    # MRN / UHID: 12+ digit sequences
    (r"^\d{12,}$", "mrn_uhid"),

    # Dates: DD/MM/YYYY or DD-MM-YYYY
    (r"^\d{1,2}[-/]\d{1,2}[-/]\d{2,4}$", "date"),

    # Reference IDs: TXN-, UTR-, RRN-
    (r"^(RCPO|TXN|UTR|RRN|REF)[-/]?\d+", "reference_id"),

    # Bill/Invoice numbers: INV-2024-98765
    (r"^[A-Z]{2,6}[-/]?\d{4}[-/]?\d+$", "bill_number"),

    # GST numbers: 22AAAAA0000A1Z5
    (r"^\d{2}[A-Z]{5}\d{4}[A-Z]\d[A-Z\d]", "gstin"),
]


def classify_suspect_numeric(text: str) -> Optional[str]:
    """Classify a token as a suspect (non-monetary) type, or None if it is not one.

    Args:
        text: The text to classify

    Returns:
        Suspect type string (e.g., "phone_number", "gstin") or None
    """
    if not text:
        return None

    cleaned = text.strip().upper().replace(",", "").replace(" ", "")

    for pattern, suspect_type in SUSPECT_PATTERNS:
        if re.match(pattern, cleaned, re.IGNORECASE):
            return suspect_type

    return None


def is_numeric_noise(name: str) -> bool:
    """Name made only of digits, spaces, dashes and parentheses."""
    return bool(re.match(NUMERIC_ONLY_PATTERN, name or ""))


def contains_phone_number(name: str) -> bool:
    return any(re.search(p, name or "") for p in PHONE_PATTERNS)


def contains_gstin(name: str) -> bool:
    return bool(re.search(GSTIN_LIKE_PATTERN, (name or "").upper()))


# =============================================================================
# Amount Parsing
# =============================================================================
def to_number_or_none(value: Any) -> Optional[float]:
    """Coerce a loosely-typed amount ("₹1,250.00", "Rs. 40", 12) to float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    cleaned = re.sub(r"(?i)(rs\.?|inr|₹)", "", text).replace(",", "")
    match = re.search(r"-?\d+(?:\.\d+)?", cleaned)
    if not match:
        return None
    try:
        return float(match.group(0))
    except (TypeError, ValueError):
        return None


def amounts_equal(a: Optional[float], b: Optional[float], tolerance: float = GRAND_TOTAL_TOLERANCE) -> bool:
    if a is None or b is None:
        return False
    return abs(a - b) <= tolerance
