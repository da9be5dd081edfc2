"""Unit tests for the item sanitizer and numeric guardrails.

Covers:
- Implausible prices on non-medical names
- Metadata rows (GSTIN, phone numbers, totals) misread as items
- Grand-total rows on multi-item bills
- Category and total backfill on surviving items
"""
from __future__ import annotations

from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from conftest import make_item
from justbill.extraction.lexicons import METADATA_KEYWORDS, matches_metadata
from justbill.extraction.numeric_guards import (
    amounts_equal,
    classify_suspect_numeric,
    to_number_or_none,
)
from justbill.extraction.sanitizer import rejection_reason, sanitize_item, sanitize_items
from justbill.models import ItemCategory


@pytest.mark.parametrize("category", list(ItemCategory))
def test_absurd_price_without_medical_name_is_rejected(category):
    item = make_item("Unknown", unit_price=9999999, category=category)

    assert rejection_reason(item) == "implausible_price"
    assert sanitize_item(item) is None


def test_expensive_procedure_survives():
    item = make_item("Cardiac Surgery Package", unit_price=250000)
    assert sanitize_item(item) is not None


def test_dosage_exempts_expensive_medicine():
    item = make_item("Inj Trastuzumab 440mg", unit_price=150000)
    assert rejection_reason(item) is None


@pytest.mark.parametrize("name,reason_prefix", [
    ("GSTIN 27AABCU9603R1ZM", "metadata:"),
    ("Grand Total", "metadata:"),
    ("Bill No 2304", "metadata:"),
    ("Call 9876543210", "phone_number"),
    ("27AABCU9603R1ZM", "gstin"),
    ("INV-2024-98765", "suspect:bill_number"),
    ("123-456 (78)", "numeric_only"),
    ("IV", "name_too_short"),
])
def test_metadata_rows_are_rejected(name, reason_prefix):
    reason = rejection_reason(make_item(name, unit_price=100))
    assert reason is not None
    assert reason.startswith(reason_prefix)


def test_drug_names_are_not_mistaken_for_metadata():
    assert rejection_reason(make_item("Pantoprazole 40mg Tab", unit_price=12)) is None
    assert rejection_reason(make_item("Cardiac Monitor", unit_price=800)) is None


def test_non_positive_price_rejected_unless_discount():
    assert rejection_reason(make_item("Lipid Profile", unit_price=0)) == "non_positive_price"
    assert rejection_reason(make_item("Package Discount", unit_price=-50)) is None


def test_grand_total_row_removed():
    items = [
        make_item("Lipid Profile", unit_price=600, total=600),
        make_item("Liver Function Test", unit_price=400, total=400),
        make_item("Hospital Services", unit_price=1000, total=1000),
    ]
    kept = sanitize_items(items, grand_total=1000.0)
    assert [i.item_name for i in kept] == ["Lipid Profile", "Liver Function Test"]


def test_grand_total_check_applies_to_single_item_bills():
    single = sanitize_items([make_item("Complete Blood Count", unit_price=350, total=350)], grand_total=350.0)
    assert single == []

    # Within the 1.0 tolerance still counts as the total
    near = sanitize_items([make_item("Complete Blood Count", unit_price=349.5, total=349.5)], grand_total=350.0)
    assert near == []

    kept = sanitize_items([make_item("Complete Blood Count", unit_price=300, total=300)], grand_total=350.0)
    assert [i.item_name for i in kept] == ["Complete Blood Count"]


def test_sanitize_fills_category_and_total():
    item = sanitize_item(make_item("Syringe 5ml", unit_price=15, quantity=6))

    assert item.category == ItemCategory.CONSUMABLE
    assert item.total_billed == 90.0
    assert item.unit_price == 15


def test_unit_price_derived_from_total():
    item = sanitize_item(make_item("Surgical Gloves", total=400, quantity=10))
    assert item.unit_price == 40.0


def test_sanitizer_is_complete_and_idempotent():
    items = [make_item(f"{keyword} 100", unit_price=100) for keyword in METADATA_KEYWORDS]
    items += [
        make_item("Paracetamol 500mg Tab", unit_price=3, quantity=20),
        make_item("Semi-Private Room", unit_price=3500, quantity=3),
        make_item("Complete Blood Count (CBC)", total=350),
    ]

    kept = sanitize_items(items)

    assert len(kept) == 3
    assert all(matches_metadata(i.item_name) is None for i in kept)
    assert sanitize_items(kept) == kept


# =============================================================================
# Numeric guards
# =============================================================================
def test_classify_suspect_numeric():
    assert classify_suspect_numeric("9876543210") == "phone_number"
    assert classify_suspect_numeric("+91 9876543210") == "phone_number"
    assert classify_suspect_numeric("022-12345678") == "phone_number"
    assert classify_suspect_numeric("23/12/2024") == "date"
    assert classify_suspect_numeric("INV-2024-98765") == "bill_number"
    assert classify_suspect_numeric("27AABCU9603R1ZM") == "gstin"
    assert classify_suspect_numeric("150.00") is None
    assert classify_suspect_numeric("") is None


def test_to_number_or_none():
    assert to_number_or_none("₹1,250.00") == 1250.0
    assert to_number_or_none("Rs. 40") == 40.0
    assert to_number_or_none(12) == 12.0
    assert to_number_or_none(None) is None
    assert to_number_or_none(True) is None
    assert to_number_or_none("n/a") is None


def test_amounts_equal():
    assert amounts_equal(100.0, 100.5)
    assert not amounts_equal(100.0, 102.0)
    assert not amounts_equal(100.0, None)
