"""
Pydantic models for the JustBill analysis pipeline.

Defines schemas for:
- Extraction: items and header fields produced by the extraction tiers
- Reference data: government ceiling prices, states and categories
- Output: per-item comparison results and the bill-level summary
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================

class ItemCategory(str, Enum):
    """Category of a billed line item."""
    MEDICINE = "Medicine"
    TEST = "Test"
    ROOM = "Room"
    CONSULTATION = "Consultation"
    NURSING = "Nursing"
    SURGERY = "Surgery"
    CONSUMABLE = "Consumable"
    EQUIPMENT = "Equipment"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: object) -> "ItemCategory":
        """Map a loosely-typed category label onto the enum (unknown -> Other)."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.OTHER


class ComparisonStatus(str, Enum):
    """Verdict for one billed item against its ceiling price."""
    FAIR = "fair"                  # Charged at or below ceiling
    OVERCHARGED = "overcharged"    # Above ceiling, at most double
    SUSPICIOUS = "suspicious"      # More than double the ceiling
    NOT_FOUND = "not_found"        # No reference price matched


class ParsingMethod(str, Enum):
    """Which extraction tier produced the item list."""
    INVOICE = "tier-1-invoice"
    VISION = "tier-2-vision"
    TEXT = "tier-3-text"
    REGEX = "tier-4-regex"
    DEMO = "demo-mock"


# =============================================================================
# Extraction Models
# =============================================================================

class ExtractedItem(BaseModel):
    """A line item as reported by one extraction tier (not yet trusted)."""
    raw_text: str = ""
    item_name: str
    category: ItemCategory = ItemCategory.OTHER
    quantity: int = Field(default=1, ge=1)
    unit: Optional[str] = None
    mrp: Optional[float] = None
    discount: Optional[float] = None
    unit_price: float = 0.0
    total_billed: float = 0.0

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value: object) -> ItemCategory:
        return ItemCategory.coerce(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: object) -> int:
        try:
            qty = int(round(float(value)))
        except (TypeError, ValueError):
            return 1
        return qty if qty >= 1 else 1


class BillHeader(BaseModel):
    """Bill-level fields; any of them may be missing."""
    hospital_name: Optional[str] = None
    bill_date: Optional[str] = None  # ISO YYYY-MM-DD
    bill_number: Optional[str] = None
    patient_name: Optional[str] = None
    gstin: Optional[str] = None
    gross_total: Optional[float] = None
    net_total: Optional[float] = None
    discount: Optional[float] = None
    cgst: Optional[float] = None
    sgst: Optional[float] = None


class ExtractionResult(BaseModel):
    """Outcome of the extraction cascade for one bill."""
    header: BillHeader = Field(default_factory=BillHeader)
    items: List[ExtractedItem] = Field(default_factory=list)
    confidence: float = 0.0
    method: ParsingMethod


# =============================================================================
# Reference Data Models
# =============================================================================

class ReferencePriceEntry(BaseModel):
    """A government-published ceiling price. Immutable once loaded."""
    model_config = ConfigDict(frozen=True)

    category: str
    item_name: str
    item_code: Optional[str] = None
    ceiling_price: float = Field(gt=0)
    unit: str = "per unit"
    source: str
    published_date: Optional[str] = None
    state_code: Optional[str] = None  # None: applies in every state


class StateInfo(BaseModel):
    id: int
    name: str
    code: str
    tier: int = Field(ge=1, le=3)


class CategoryInfo(BaseModel):
    id: int
    name: str
    gst_rate: float = 0.0
    description: Optional[str] = None


# =============================================================================
# Comparison Output Models
# =============================================================================

class ComparisonResult(BaseModel):
    """One billed item checked against the reference catalog."""
    model_config = ConfigDict(frozen=True)

    item_name: str
    category: ItemCategory
    quantity: int
    unit_price: float
    total_billed: float
    govt_ceiling_price: Optional[float] = None
    overcharge_amount: float = Field(default=0.0, ge=0)
    status: ComparisonStatus
    price_source: Optional[str] = None
    source_date: Optional[str] = None
    notes: str = ""


class AnalysisSummary(BaseModel):
    """Bill-level totals derived from a list of ComparisonResult."""
    total_billed: float = 0.0
    total_fair_price: float = 0.0
    total_overcharge: float = 0.0
    savings_percent: float = 0.0
    item_count: int = 0
    fair_count: int = 0
    overcharged_count: int = 0
    suspicious_count: int = 0
    not_found_count: int = 0


class BillSummary(AnalysisSummary):
    """Summary as reported to callers, with the bill's own tax rows."""
    discount: Optional[float] = None
    cgst: Optional[float] = None
    sgst: Optional[float] = None


class AnalysisResult(BaseModel):
    """Full outcome of analysing one bill."""
    id: str
    hospital_name: Optional[str] = None
    bill_date: Optional[str] = None
    bill_number: Optional[str] = None
    state: Optional[StateInfo] = None
    summary: BillSummary
    items: List[ComparisonResult] = Field(default_factory=list)
    ocr_confidence: float = 0.0
    parsing_method: ParsingMethod
