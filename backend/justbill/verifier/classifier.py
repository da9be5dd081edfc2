"""
Overcharge Classifier & Summary Aggregator.

Per item:
    overcharge_per_unit = unit_price_charged - ceiling_price
    <= 0                               -> fair (overcharge forced to 0)
    overcharge_per_unit / ceiling > R  -> suspicious
    otherwise                          -> overcharged
    overcharge_amount = max(0, overcharge_per_unit * quantity)

R is SUSPICIOUS_OVERCHARGE_RATIO (default 1.0, i.e. more than double the
ceiling). The summary is a pure function of the result list.

Environment Variables:
    SUSPICIOUS_OVERCHARGE_RATIO: Overcharge/ceiling ratio above which an item is suspicious (default: 1.0)
"""

from __future__ import annotations

import os
from typing import Iterable, Tuple

from justbill.models import AnalysisSummary, ComparisonResult, ComparisonStatus

SUSPICIOUS_OVERCHARGE_RATIO = float(os.getenv("SUSPICIOUS_OVERCHARGE_RATIO", "1.0"))

NOTE_FAIR = "Price is at or below government ceiling"
NOTE_NOT_FOUND = "No government reference price found for this item"


def classify_price(
    unit_price_charged: float,
    ceiling_price: float,
    quantity: int = 1,
    suspicious_ratio: float = SUSPICIOUS_OVERCHARGE_RATIO,
) -> Tuple[ComparisonStatus, float, str]:
    """Return (status, overcharge_amount, notes) for one matched item."""
    overcharge_per_unit = unit_price_charged - ceiling_price

    if overcharge_per_unit <= 0:
        return ComparisonStatus.FAIR, 0.0, NOTE_FAIR

    ratio = overcharge_per_unit / ceiling_price
    overcharge_amount = round(max(0.0, overcharge_per_unit * quantity), 2)

    if ratio > suspicious_ratio:
        return ComparisonStatus.SUSPICIOUS, overcharge_amount, f"Charged {ratio * 100:.0f}% above ceiling price"
    return ComparisonStatus.OVERCHARGED, overcharge_amount, f"Charged ₹{overcharge_per_unit:.2f} above ceiling per unit"


def summarize(results: Iterable[ComparisonResult]) -> AnalysisSummary:
    """Aggregate comparison results. Unmatched items count at face value."""
    results = list(results)

    total_billed = sum(r.total_billed for r in results)
    total_overcharge = sum(r.overcharge_amount for r in results)
    total_fair = sum(
        r.govt_ceiling_price * r.quantity if r.govt_ceiling_price is not None else r.total_billed
        for r in results
    )

    def count(status: ComparisonStatus) -> int:
        return sum(1 for r in results if r.status == status)

    savings_percent = (total_overcharge / total_billed * 100) if total_billed > 0 else 0.0

    return AnalysisSummary(
        total_billed=round(total_billed, 2),
        total_fair_price=round(total_fair, 2),
        total_overcharge=round(total_overcharge, 2),
        savings_percent=round(savings_percent, 2),
        item_count=len(results),
        fair_count=count(ComparisonStatus.FAIR),
        overcharged_count=count(ComparisonStatus.OVERCHARGED),
        suspicious_count=count(ComparisonStatus.SUSPICIOUS),
        not_found_count=count(ComparisonStatus.NOT_FOUND),
    )
