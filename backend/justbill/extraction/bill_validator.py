"""
Bill-Type Validator.

Decides from OCR text whether a document is a medical/hospital bill at all,
by counting hits from two disjoint keyword lexicons. Runs only on the OCR
text path, before any price comparison.

Decision table (first matching row wins):
    medical == 0, non-medical == 0, amounts present  -> reject, 30
    medical == 0, non-medical == 0, no amounts       -> reject, 10
    medical >= 3, non-medical <= 1                   -> accept, min(95, 50 + 5m)
    medical >= 1, non-medical == 0                   -> accept, min(80, 40 + 10m)
    non-medical > medical                            -> reject, min(90, 50 + 10n)
    otherwise                                        -> accept iff medical >= 2, 50

Non-medical hits are weighted by NON_MEDICAL_WEIGHT before the table is applied.

Environment Variables:
    NON_MEDICAL_WEIGHT: Multiplier applied to non-medical keyword hits (default: 2)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional

from justbill.extraction.lexicons import (
    AMOUNT_HINT_PATTERN,
    MEDICAL_INDICATORS,
    NON_MEDICAL_INDICATORS,
    find_keywords,
    indicator_pattern,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================
NON_MEDICAL_WEIGHT = int(os.getenv("NON_MEDICAL_WEIGHT", "2"))

CONFIDENCE_NO_SIGNAL_WITH_AMOUNTS = 30
CONFIDENCE_NO_SIGNAL = 10
CONFIDENCE_MIXED = 50

REASON_NO_MEDICAL_TERMS = "Could not identify this as a medical bill. No medical-related terms found."
REASON_UNRECOGNIZED = "Unable to recognize document type. Please upload a clear hospital bill."
REASON_UNCONFIRMED = "Unable to confirm this is a medical bill."


@dataclass
class ValidationResult:
    """Outcome of the bill-type check."""
    is_medical_bill: bool
    confidence: float
    reason: Optional[str] = None
    medical_keywords: List[str] = field(default_factory=list)
    non_medical_keywords: List[str] = field(default_factory=list)


def validate_medical_bill(ocr_text: Optional[str]) -> ValidationResult:
    """Classify OCR text as a medical bill or not."""
    text = ocr_text or ""

    medical = find_keywords(text, MEDICAL_INDICATORS, to_pattern=indicator_pattern)
    non_medical = find_keywords(text, NON_MEDICAL_INDICATORS, to_pattern=indicator_pattern)

    medical_score = len(medical)
    non_medical_score = len(non_medical) * NON_MEDICAL_WEIGHT

    if medical_score == 0 and non_medical_score == 0:
        if re.search(AMOUNT_HINT_PATTERN, text, re.IGNORECASE):
            result = ValidationResult(False, CONFIDENCE_NO_SIGNAL_WITH_AMOUNTS, REASON_NO_MEDICAL_TERMS)
        else:
            result = ValidationResult(False, CONFIDENCE_NO_SIGNAL, REASON_UNRECOGNIZED)
    elif medical_score >= 3 and non_medical_score <= 1:
        result = ValidationResult(True, min(95, 50 + medical_score * 5))
    elif medical_score >= 1 and non_medical_score == 0:
        result = ValidationResult(True, min(80, 40 + medical_score * 10))
    elif non_medical_score > medical_score:
        result = ValidationResult(
            False,
            min(90, 50 + non_medical_score * 10),
            f"This appears to be a {non_medical[0]} receipt, not a medical bill.",
        )
    else:
        accepted = medical_score >= 2
        result = ValidationResult(accepted, CONFIDENCE_MIXED, None if accepted else REASON_UNCONFIRMED)

    result.medical_keywords = medical
    result.non_medical_keywords = non_medical

    logger.info(
        f"Bill validation: medical={medical_score}, non_medical={non_medical_score}, "
        f"accepted={result.is_medical_bill}, confidence={result.confidence}"
    )
    return result
