"""Error types surfaced by the analysis pipeline.

Only two conditions abort an analysis with a named outcome: the OCR backend
could not read the upload, or the document is not a medical bill. Both are
user-correctable and carry a stable ``code`` for the HTTP layer.
"""

from __future__ import annotations

from typing import Optional


class BillAnalysisError(Exception):
    """Base class for expected, user-facing analysis failures."""

    code = "analysis_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class OcrFailedError(BillAnalysisError):
    code = "ocr_failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Could not read the uploaded image. Please try a clearer photo.")


class NotMedicalBillError(BillAnalysisError):
    code = "not_medical_bill"

    def __init__(self, message: Optional[str] = None, confidence: float = 0.0):
        super().__init__(message or "This document does not appear to be a medical or hospital bill.")
        self.confidence = confidence

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["confidence"] = self.confidence
        return detail


class CatalogUnavailableError(Exception):
    """Raised when the reference price catalog cannot be loaded."""
