"""
Command-line entry point for JustBill.

Run with:
    python backend/main.py                      # analyze the built-in demo bill
    python backend/main.py bill.jpg --state-id 7
    python backend/main.py bill.pdf --json      # print the full result as JSON
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add backend directory to Python path to enable absolute imports
BACKEND_DIR = Path(__file__).resolve().parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from justbill.backends.ocr_space import guess_mime_type
from justbill.catalog import load_catalog
from justbill.config import ALLOWED_MIME_TYPES, MAX_UPLOAD_BYTES
from justbill.exceptions import BillAnalysisError, CatalogUnavailableError
from justbill.extraction.orchestrator import build_orchestrator
from justbill.models import AnalysisResult, ComparisonStatus
from justbill.services.analysis import DEFAULT_STATE_ID, BillAnalysisService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    ComparisonStatus.FAIR: "✅",
    ComparisonStatus.OVERCHARGED: "⚠️",
    ComparisonStatus.SUSPICIOUS: "🚩",
    ComparisonStatus.NOT_FOUND: "❔",
}


def print_report(result: AnalysisResult) -> None:
    summary = result.summary
    print("\n" + "=" * 70)
    print(f"{result.hospital_name or 'Unknown Hospital'}")
    print(f"Bill: {result.bill_number or '-'}   Date: {result.bill_date or '-'}   "
          f"State: {result.state.name if result.state else '-'}")
    print(f"Parsed via {result.parsing_method.value} (confidence {result.ocr_confidence:.0f})")
    print("=" * 70)

    for item in result.items:
        ceiling = f"₹{item.govt_ceiling_price:,.2f}" if item.govt_ceiling_price is not None else "-"
        print(
            f"{STATUS_ICONS.get(item.status, ' ')} {item.item_name[:38]:<38} "
            f"x{item.quantity:<3} ₹{item.unit_price:>9,.2f}  ceiling {ceiling:>11}"
        )
        if item.status in (ComparisonStatus.OVERCHARGED, ComparisonStatus.SUSPICIOUS):
            print(f"     {item.notes}")

    print("-" * 70)
    print(f"Total billed:     ₹{summary.total_billed:,.2f}")
    print(f"Fair total:       ₹{summary.total_fair_price:,.2f}")
    print(f"Overcharge:       ₹{summary.total_overcharge:,.2f} ({summary.savings_percent:.1f}%)")
    print(
        f"Items: {summary.item_count}  fair={summary.fair_count}  "
        f"overcharged={summary.overcharged_count}  suspicious={summary.suspicious_count}  "
        f"not found={summary.not_found_count}"
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check a hospital bill against government ceiling prices")
    parser.add_argument("bill", nargs="?", help="Bill image or PDF (omit to run the demo bill)")
    parser.add_argument("--state-id", type=int, default=DEFAULT_STATE_ID, help="1-based state id")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    args = parser.parse_args(argv)

    data = None
    filename = ""
    mime_type = ""
    if args.bill:
        path = Path(args.bill)
        if not path.exists():
            logger.error(f"Bill file not found: {path}")
            return 1
        mime_type = guess_mime_type(path.name)
        if mime_type not in ALLOWED_MIME_TYPES:
            logger.error(f"Unsupported file type: {mime_type}")
            return 1
        data = path.read_bytes()
        if len(data) > MAX_UPLOAD_BYTES:
            logger.error(f"File exceeds upload limit of {MAX_UPLOAD_BYTES} bytes")
            return 1
        filename = path.name

    try:
        catalog = load_catalog()
    except CatalogUnavailableError as e:
        logger.error(f"Failed to load reference catalog: {e}")
        return 1

    if catalog.state_by_id(args.state_id) is None:
        logger.error(f"Unknown state id: {args.state_id}")
        return 1

    service = BillAnalysisService(catalog, build_orchestrator())
    try:
        result = service.analyze(data, filename=filename, mime_type=mime_type, state_id=args.state_id)
    except BillAnalysisError as e:
        print(f"\n❌ {e.message}")
        return 2
    except Exception as e:
        logger.error(f"Failed to analyze bill: {e}", exc_info=True)
        return 1

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print_report(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
