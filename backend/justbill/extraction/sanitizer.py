"""
Item Sanitizer.

Every tier's output passes through here before it is trusted. Rejects
line items that are really invoice metadata (bill numbers, phone numbers,
GSTINs, tax and total rows) or carry an implausible price, and fills in
the category when the tier could not.

Environment Variables:
    MAX_PLAUSIBLE_UNIT_PRICE: Unit price above which a non-medical name is rejected (default: 100000)
    GRAND_TOTAL_TOLERANCE: Absolute tolerance for the "this row is the total" check (default: 1.0)
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

from justbill.extraction import numeric_guards
from justbill.extraction.categorizer import categorize
from justbill.extraction.lexicons import DISCOUNT_PATTERN, is_medical_term, matches_metadata
from justbill.models import ExtractedItem, ItemCategory

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3


def effective_unit_price(item: ExtractedItem) -> float:
    """Unit price as reported, else derived from the line total."""
    if item.unit_price:
        return item.unit_price
    if item.total_billed:
        return item.total_billed / max(item.quantity, 1)
    return 0.0


def rejection_reason(item: ExtractedItem, grand_total: Optional[float] = None) -> Optional[str]:
    """Why ``item`` is not a billable line, or None if it is one."""
    name = (item.item_name or "").strip()

    if len(name) < MIN_NAME_LENGTH:
        return "name_too_short"

    hit = matches_metadata(name)
    if hit:
        return f"metadata:{hit}"

    if numeric_guards.is_numeric_noise(name):
        return "numeric_only"

    if numeric_guards.contains_phone_number(name):
        return "phone_number"

    if numeric_guards.contains_gstin(name):
        return "gstin"

    suspect = numeric_guards.classify_suspect_numeric(name)
    if suspect:
        return f"suspect:{suspect}"

    unit_price = effective_unit_price(item)

    if grand_total and unit_price > 0 and numeric_guards.amounts_equal(unit_price, grand_total):
        return "grand_total_row"

    if unit_price > numeric_guards.MAX_PLAUSIBLE_UNIT_PRICE and not is_medical_term(name):
        return "implausible_price"

    if unit_price <= 0 and not re.search(DISCOUNT_PATTERN, name, re.IGNORECASE):
        return "non_positive_price"

    return None


def sanitize_item(item: ExtractedItem, grand_total: Optional[float] = None) -> Optional[ExtractedItem]:
    """Return a normalized copy of ``item``, or None when it is rejected."""
    reason = rejection_reason(item, grand_total)
    if reason:
        logger.debug(f"Sanitizer rejected '{item.item_name}': {reason}")
        return None

    unit_price = effective_unit_price(item)
    updates = {"item_name": item.item_name.strip(), "unit_price": unit_price}
    if not item.total_billed:
        updates["total_billed"] = round(unit_price * item.quantity, 2)
    if item.category == ItemCategory.OTHER:
        updates["category"] = categorize(f"{item.item_name} {item.raw_text}")

    return item.model_copy(update=updates)


def sanitize_items(items: Iterable[ExtractedItem], grand_total: Optional[float] = None) -> List[ExtractedItem]:
    """Filter a tier's items.

    Every item is checked against ``grand_total``, so a row whose unit price
    equals the bill total is dropped even when it is the only row.
    """
    items = list(items)

    kept: List[ExtractedItem] = []
    for item in items:
        cleaned = sanitize_item(item, grand_total)
        if cleaned is not None:
            kept.append(cleaned)

    if len(kept) != len(items):
        logger.info(f"Sanitizer kept {len(kept)}/{len(items)} items")
    return kept
