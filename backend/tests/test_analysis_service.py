from __future__ import annotations

from pathlib import Path
import sys

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from justbill.catalog import ReferenceCatalog
from justbill.extraction.orchestrator import ExtractionBackends, ExtractionOrchestrator
from justbill.models import ComparisonStatus, ReferencePriceEntry, StateInfo
from justbill.services.analysis import BillAnalysisService

DEMO = "CITY CARE CLINIC\nBill No: CC-1182\nDate: 02/01/2025\nLABORATORY\nLipid Profile  Total: 600.00\n"


def _service() -> BillAnalysisService:
    entries = [
        ReferencePriceEntry(category="Test", item_name="Lipid Profile", item_code="CGHS-T006",
                            ceiling_price=300, source="CGHS", published_date="2024-01-01"),
        ReferencePriceEntry(category="Test", item_name="Lipid Profile", item_code="KA-T006",
                            ceiling_price=650, source="KA-HFW", published_date="2024-06-01", state_code="KA"),
    ]
    states = [
        StateInfo(id=1, name="Karnataka", code="KA", tier=1),
        StateInfo(id=2, name="Maharashtra", code="MH", tier=1),
    ]
    orchestrator = ExtractionOrchestrator(ExtractionBackends(), demo_text=DEMO)
    return BillAnalysisService(ReferenceCatalog(entries, states), orchestrator)


def test_national_ceiling_applies_outside_restricted_state():
    result = _service().analyze(state_id=2)

    assert result.bill_number == "CC-1182"
    assert result.bill_date == "2025-01-02"
    assert result.state.code == "MH"
    [item] = result.items
    assert item.status == ComparisonStatus.OVERCHARGED
    assert item.govt_ceiling_price == 300
    assert result.summary.total_overcharge == 300.0
    assert result.summary.savings_percent == 50.0


def test_state_entries_are_candidates_in_their_state():
    result = _service().analyze(state_id=1)
    [item] = result.items

    # Both entries score the same, so the first (national) one is kept
    assert item.price_source == "CGHS (CGHS-T006)"


def test_each_analysis_gets_its_own_id():
    service = _service()
    assert service.analyze().id != service.analyze().id
