from __future__ import annotations

from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from conftest import make_item
from justbill.catalog import ReferenceCatalog
from justbill.extraction.regex_parser import parse_bill_text
from justbill.extraction.sanitizer import sanitize_items
from justbill.models import AnalysisSummary, ComparisonResult, ComparisonStatus, ItemCategory
from justbill.verifier import PriceMatcher, classify_price, compare_prices, fuzzy_score, summarize
from justbill.verifier.price_matcher import CATEGORY_BOOST, MATCH_THRESHOLD


@pytest.fixture(scope="module")
def catalog() -> ReferenceCatalog:
    return ReferenceCatalog.from_files()


# =============================================================================
# Fuzzy scoring
# =============================================================================
@pytest.mark.parametrize("name", ["Lipid Profile", "ICU", "Paracetamol 500mg Tablet", "x"])
def test_identical_names_score_one(name):
    assert fuzzy_score(name, name) == 1.0
    assert fuzzy_score(name.upper(), name.lower()) == 1.0


def test_containment_scores_length_ratio():
    score = fuzzy_score("Paracetamol 500mg Tab", "Paracetamol 500mg Tablet")
    assert score == pytest.approx(21 / 24)


def test_token_containment():
    assert fuzzy_score("Tab Paracetamol", "Paracetamol 500mg Tablet") == 1.0
    assert fuzzy_score("Lipid Panel Fasting", "Lipid Profile") == pytest.approx(1 / 3)


def test_empty_and_short_words_score_zero():
    assert fuzzy_score("", "Lipid Profile") == 0.0
    assert fuzzy_score("Lipid Profile", "") == 0.0
    assert fuzzy_score("iv x", "Syringe 5ml") == 0.0


# =============================================================================
# Matcher
# =============================================================================
def test_same_category_exact_match(catalog):
    item = make_item("Semi-Private Room", unit_price=3500, quantity=3, category=ItemCategory.ROOM)
    match = PriceMatcher(catalog.entries).find_best_match(item)

    assert match.entry.item_code == "CGHS-R002"
    assert match.score == pytest.approx(1.0 + CATEGORY_BOOST)


def test_global_pass_recovers_miscategorized_item(catalog):
    item = make_item("Semi-Private Room", unit_price=3500, category=ItemCategory.MEDICINE)
    match = PriceMatcher(catalog.entries).find_best_match(item)

    assert match.entry.item_code == "CGHS-R002"
    assert match.score == pytest.approx(1.0)


def test_category_first_never_worse_than_best_same_category(catalog):
    matcher = PriceMatcher(catalog.entries)
    for name, category in [
        ("Paracetamol 500mg Tab", ItemCategory.MEDICINE),
        ("Lipid Profile Test", ItemCategory.TEST),
        ("Surgical Gloves", ItemCategory.CONSUMABLE),
        ("Nursing Charges", ItemCategory.NURSING),
    ]:
        item = make_item(name, unit_price=10, category=category)
        same_category = [
            fuzzy_score(name, e.item_name) + CATEGORY_BOOST
            for e in catalog.entries
            if e.category.lower() == category.value.lower()
        ]
        best_same = max(same_category)
        assert best_same >= MATCH_THRESHOLD, name

        match = matcher.find_best_match(item)
        assert match is not None
        assert match.score >= best_same


def test_unknown_item_falls_through_to_not_found(catalog):
    result = PriceMatcher(catalog.entries).compare_item(make_item("Zzyzx Widget", unit_price=99))

    assert result.status == ComparisonStatus.NOT_FOUND
    assert result.govt_ceiling_price is None
    assert result.overcharge_amount == 0


def test_unmatched_brand_name_never_raises(catalog):
    item = make_item("OXYFLOXIN-100 TAB", unit_price=249.60, total=249.60, category=ItemCategory.MEDICINE)
    result = PriceMatcher(catalog.entries).compare_item(item)

    assert result.status in set(ComparisonStatus)
    if result.status == ComparisonStatus.NOT_FOUND:
        assert result.govt_ceiling_price is None


def test_empty_catalog_degrades_to_not_found():
    results = compare_prices([make_item("Lipid Profile", unit_price=600)], [])
    assert [r.status for r in results] == [ComparisonStatus.NOT_FOUND]


def test_lookup_error_degrades_to_not_found(catalog, monkeypatch):
    matcher = PriceMatcher(catalog.entries)

    def boom(item):
        raise RuntimeError("index corrupted")

    monkeypatch.setattr(matcher, "find_best_match", boom)
    result = matcher.compare_item(make_item("Lipid Profile", unit_price=600))

    assert result.status == ComparisonStatus.NOT_FOUND


def test_compare_fills_price_source(catalog):
    item = make_item("IV Cannula", unit_price=75, quantity=2, category=ItemCategory.CONSUMABLE)
    result = PriceMatcher(catalog.entries).compare_item(item)

    assert result.status == ComparisonStatus.OVERCHARGED
    assert result.govt_ceiling_price == 50.0
    assert result.overcharge_amount == 50.0
    assert result.price_source == "CGHS (CGHS-X001)"
    assert result.source_date == "2024-01-01"


def test_demo_bill_results_hold_status_invariants(catalog, demo_text):
    parsed = parse_bill_text(demo_text)
    items = sanitize_items(parsed.items, parsed.header.net_total)
    results = compare_prices(items, catalog.entries)

    assert len(results) == len(items)
    for r in results:
        if r.status == ComparisonStatus.FAIR:
            assert r.overcharge_amount == 0
        if r.status == ComparisonStatus.NOT_FOUND:
            assert r.govt_ceiling_price is None

    by_name = {r.item_name: r for r in results}
    assert by_name["Complete Blood Count (CBC)"].status == ComparisonStatus.SUSPICIOUS
    assert by_name["Semi-Private Room"].overcharge_amount == 4500.0


# =============================================================================
# Classifier and summary
# =============================================================================
def test_classify_fair_forces_zero_overcharge():
    assert classify_price(100, 150, 3)[:2] == (ComparisonStatus.FAIR, 0.0)
    assert classify_price(150, 150, 1)[0] == ComparisonStatus.FAIR


def test_classify_overcharged():
    status, amount, notes = classify_price(3.00, 1.83, 20)

    assert status == ComparisonStatus.OVERCHARGED
    assert amount == pytest.approx(23.4)
    assert notes == "Charged ₹1.17 above ceiling per unit"


def test_classify_suspicious_above_double():
    status, amount, notes = classify_price(350, 150, 1)

    assert status == ComparisonStatus.SUSPICIOUS
    assert amount == 200.0
    assert notes == "Charged 133% above ceiling price"

    # Exactly double is still "overcharged"
    assert classify_price(300, 150)[0] == ComparisonStatus.OVERCHARGED


def test_summary_of_nothing_is_zero():
    assert summarize([]) == AnalysisSummary()


def _result(name, status, billed, unit=None, ceiling=None, overcharge=0.0, qty=1):
    return ComparisonResult(
        item_name=name,
        category=ItemCategory.OTHER,
        quantity=qty,
        unit_price=unit if unit is not None else billed / qty,
        total_billed=billed,
        govt_ceiling_price=ceiling,
        overcharge_amount=overcharge,
        status=status,
    )


def test_summary_counts_unmatched_at_face_value():
    results = [
        _result("Lipid Profile", ComparisonStatus.FAIR, 100, ceiling=150),
        _result("Special Kit", ComparisonStatus.NOT_FOUND, 500),
        _result("CBC", ComparisonStatus.SUSPICIOUS, 350, ceiling=150, overcharge=200),
        _result("IV Cannula", ComparisonStatus.OVERCHARGED, 150, ceiling=50, overcharge=50, qty=2),
    ]
    summary = summarize(results)

    assert summary.total_billed == 1100.0
    assert summary.total_fair_price == 150 + 500 + 150 + 100
    assert summary.total_overcharge == 250.0
    assert summary.savings_percent == pytest.approx(22.73)
    assert (summary.fair_count, summary.overcharged_count, summary.suspicious_count, summary.not_found_count) == (1, 1, 1, 1)
    assert summary.item_count == 4

    # Pure: recomputing gives the same answer
    assert summarize(results) == summary
