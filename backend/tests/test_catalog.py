from __future__ import annotations

import json
from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from justbill.catalog import ReferenceCatalog, load_catalog
from justbill.exceptions import CatalogUnavailableError
from justbill.models import ReferencePriceEntry


def test_packaged_seed_data_loads():
    catalog = load_catalog()

    assert len(catalog) == 75
    assert len(catalog.states()) == 36
    assert len(catalog.categories()) == 10
    assert catalog.state_by_id(1).id == 1
    assert catalog.state_by_id(0) is None
    assert catalog.state_by_id(37) is None
    assert all(e.ceiling_price > 0 for e in catalog.entries)


def test_reference_info_groups_by_source():
    info = load_catalog().reference_info()
    sources = {s["source"]: s for s in info["sources"]}

    assert info["total_items"] == 75
    assert set(sources) == {"CGHS", "NPPA"}
    assert sources["NPPA"]["latest_date"] == "2024-03-15"
    assert sources["CGHS"]["latest_date"] == "2024-01-01"
    assert sum(s["item_count"] for s in info["sources"]) == 75


def test_state_restricted_entries():
    national = ReferencePriceEntry(category="Room", item_name="General Ward", ceiling_price=1000, source="CGHS")
    karnataka = ReferencePriceEntry(
        category="Room", item_name="General Ward", ceiling_price=900, source="KA-HFW", state_code="KA"
    )
    catalog = ReferenceCatalog([national, karnataka])

    assert catalog.entries_for_state("KA") == [national, karnataka]
    assert catalog.entries_for_state("ka") == [national, karnataka]
    assert catalog.entries_for_state("MH") == [national]
    assert catalog.entries_for_state(None) == [national, karnataka]


def test_missing_seed_file(tmp_path):
    with pytest.raises(CatalogUnavailableError):
        ReferenceCatalog.from_files(prices_path=tmp_path / "nope.json")


def test_invalid_seed_rows(tmp_path):
    bad = tmp_path / "prices.json"
    bad.write_text(json.dumps([{"category": "Test", "item_name": "CBC", "ceiling_price": 0, "source": "CGHS"}]))

    with pytest.raises(CatalogUnavailableError):
        ReferenceCatalog.from_files(prices_path=bad)


def test_seed_must_be_a_list(tmp_path):
    bad = tmp_path / "prices.json"
    bad.write_text('{"items": []}')

    with pytest.raises(CatalogUnavailableError):
        ReferenceCatalog.from_files(prices_path=bad)
