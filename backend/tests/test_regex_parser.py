from __future__ import annotations

from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from justbill.extraction.regex_parser import (
    clean_item_name,
    display_case,
    parse_bill_text,
    parse_indian_date,
    parse_line_item,
    should_skip_line,
)
from justbill.models import ItemCategory


def _by_name(items):
    return {item.item_name: item for item in items}


def test_demo_bill_header(demo_text):
    header = parse_bill_text(demo_text).header

    assert header.hospital_name == "City General Hospital"
    assert header.bill_date == "2024-12-23"
    assert header.bill_number == "INV-2024-98765"
    assert header.patient_name == "John Doe"
    assert header.gstin == "27AABCU9603R1ZM"
    assert header.gross_total == 16310.00
    assert header.net_total == 17240.90
    assert header.discount == 500.00
    assert header.cgst == 715.45
    assert header.sgst == 715.45


def test_demo_bill_items(demo_text):
    items = parse_bill_text(demo_text).items
    assert len(items) == 14

    by_name = _by_name(items)

    paracetamol = by_name["Paracetamol 500mg Tab"]
    assert paracetamol.category == ItemCategory.MEDICINE
    assert paracetamol.quantity == 20
    assert paracetamol.unit_price == 3.00
    assert paracetamol.total_billed == 60.00
    assert paracetamol.mrp == 3.00

    room = by_name["Semi-Private Room"]
    assert room.category == ItemCategory.ROOM
    assert (room.quantity, room.unit_price, room.total_billed) == (3, 3500.00, 10500.00)

    consultation = by_name["Specialist Consultation"]
    assert consultation.category == ItemCategory.CONSULTATION
    assert (consultation.quantity, consultation.unit_price) == (2, 750.00)

    nursing = by_name["Nursing Charges"]
    assert nursing.category == ItemCategory.NURSING
    assert (nursing.quantity, nursing.unit_price) == (3, 400.00)

    assert by_name["IV Cannula"].unit_price == 75.00
    assert by_name["Syringe 5ml"].quantity == 6
    assert by_name["Syringe 5ml"].unit_price == 15.00
    assert by_name["Complete Blood Count (CBC)"].category == ItemCategory.TEST
    assert by_name["Complete Blood Count (CBC)"].total_billed == 350.00


def test_demo_bill_skips_totals_and_metadata(demo_text):
    names = [item.item_name.lower() for item in parse_bill_text(demo_text).items]
    for forbidden in ("total", "cgst", "sgst", "payable", "receipt", "gstin", "phone", "john"):
        assert not any(forbidden in name for name in names), forbidden


def test_section_header_sets_category_for_plain_names():
    text = "CONSUMABLES\nSpecial Kit Qty: 2 Total: 300.00\n"
    items = parse_bill_text(text).items

    assert len(items) == 1
    assert items[0].category == ItemCategory.CONSUMABLE
    assert items[0].unit_price == 150.00


@pytest.mark.parametrize("garbage", [
    "",
    None,
    "\n\n\n",
    "@@@@ #### $$$$",
    "1234567890 9876543210",
    "₹₹₹ 12.34.56 ///--- ((((",
    "x" * 5000,
    "Total:\nCGST:\nNET PAYABLE:",
])
def test_garbage_never_raises(garbage):
    parsed = parse_bill_text(garbage)
    assert isinstance(parsed.items, list)


def test_dosage_is_not_an_amount():
    item = parse_line_item("Vitamin D3 60000 IU Sachet 1 45.00")
    assert item is not None
    assert item.total_billed == 45.00


def test_large_amount_requires_high_value_context():
    assert parse_line_item("Miscellaneous Services 250000.00") is None

    item = parse_line_item("Cardiac Bypass Surgery 250000.00")
    assert item is not None
    assert item.total_billed == 250000.00


def test_should_skip_line_keeps_medical_words():
    assert should_skip_line("Age: 45 Years / Male")
    assert should_skip_line("Phone: 022-12345678")
    assert should_skip_line("Pharmacy Total: 420.00")
    assert not should_skip_line("Physician Consultation Total: 500.00")
    assert not should_skip_line("Paracetamol dosage 500mg 30.00")


def test_parse_indian_date():
    assert parse_indian_date("23/12/2024") == "2024-12-23"
    assert parse_indian_date("5-1-24") == "2024-01-05"
    # Month-first dates are swapped back
    assert parse_indian_date("12/23/2024") == "2024-12-23"
    assert parse_indian_date("31/02/2024") is None
    assert parse_indian_date("no date here") is None


def test_display_case_only_changes_upper_case_names():
    assert display_case("OXYFLOXIN-100 TAB") == "Oxyfloxin-100 Tab"
    assert display_case("X-Ray Chest PA View") == "X-Ray Chest PA View"


def test_clean_item_name_rejects_noise():
    assert clean_item_name("12 34 56") is None
    assert clean_item_name("-- ** --") is None
    assert clean_item_name("Lipid Profile Total: 600.00") == "Lipid Profile"
