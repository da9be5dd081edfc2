"""
Result types and interfaces for the external extraction backends.

The orchestrator only depends on these shapes; concrete clients live in
the sibling modules and are injected at process start, so tests can pass
in fakes with the same methods.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from justbill.models import BillHeader, ExtractedItem


@dataclass
class OcrResult:
    """Text recognized from a bill image."""
    success: bool
    text: str = ""
    confidence: float = 0.0
    error: Optional[str] = None


@dataclass
class BackendParse:
    """Items and header fields reported by a structured or LLM backend."""
    header: BillHeader = field(default_factory=BillHeader)
    items: List[ExtractedItem] = field(default_factory=list)
    confidence: float = 0.0
    is_medical_bill: Optional[bool] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


class InvoiceBackend(Protocol):
    def parse_invoice(self, data: bytes, filename: str) -> BackendParse: ...


class VisionBackend(Protocol):
    def extract_from_image(self, data: bytes, mime_type: str) -> BackendParse: ...


class TextBackend(Protocol):
    def extract_from_text(self, ocr_text: str) -> BackendParse: ...


class OcrBackend(Protocol):
    def recognize(self, data: bytes, filename: str) -> OcrResult: ...
