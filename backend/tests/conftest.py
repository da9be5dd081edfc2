from __future__ import annotations

from pathlib import Path
import sys

import pytest

# Ensure `justbill` package (backend/justbill) is importable in test runs.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from justbill.config import DEMO_OCR_FILE
from justbill.models import ExtractedItem, ItemCategory


@pytest.fixture
def demo_text() -> str:
    return DEMO_OCR_FILE.read_text(encoding="utf-8")


def make_item(name: str, unit_price: float = 0.0, total: float = 0.0, quantity: int = 1,
              category: ItemCategory = ItemCategory.OTHER) -> ExtractedItem:
    return ExtractedItem(
        raw_text=name,
        item_name=name,
        category=category,
        quantity=quantity,
        unit_price=unit_price,
        total_billed=total,
    )
