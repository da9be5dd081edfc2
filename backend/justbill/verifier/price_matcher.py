"""
Price Matcher - resolves billed items against the reference catalog.

Two passes over the catalog:
1. Entries in the item's own category. Every score gets CATEGORY_BOOST.
   If the best boosted score beats HIGH_CONFIDENCE_MATCH, stop here.
2. The whole catalog. Entries only get the boost when their category
   happens to match.

A candidate replaces the current best only if its boosted score is
strictly higher and at least MATCH_THRESHOLD. The best from pass 1 is
carried into pass 2, so the global pass can only improve on it.

Environment Variables:
    MATCH_THRESHOLD: Minimum boosted score to accept a match (default: 0.4)
    HIGH_CONFIDENCE_MATCH: Boosted score that ends the search after pass 1 (default: 0.7)
    CATEGORY_BOOST: Added to the score of same-category entries (default: 0.1)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from justbill.extraction.sanitizer import effective_unit_price
from justbill.models import ComparisonResult, ComparisonStatus, ExtractedItem, ReferencePriceEntry
from justbill.verifier.classifier import NOTE_NOT_FOUND, SUSPICIOUS_OVERCHARGE_RATIO, classify_price
from justbill.verifier.fuzzy import fuzzy_score

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================
MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.4"))
HIGH_CONFIDENCE_MATCH = float(os.getenv("HIGH_CONFIDENCE_MATCH", "0.7"))
CATEGORY_BOOST = float(os.getenv("CATEGORY_BOOST", "0.1"))


@dataclass
class MatchCandidate:
    """Best catalog entry found for an item."""
    entry: ReferencePriceEntry
    score: float  # includes the category boost


def _same_category(entry: ReferencePriceEntry, category: str) -> bool:
    return entry.category.strip().lower() == category.strip().lower()


class PriceMatcher:
    """Matches items against a fixed list of reference entries."""

    def __init__(
        self,
        entries: Sequence[ReferencePriceEntry],
        threshold: float = MATCH_THRESHOLD,
        high_confidence: float = HIGH_CONFIDENCE_MATCH,
        category_boost: float = CATEGORY_BOOST,
        suspicious_ratio: float = SUSPICIOUS_OVERCHARGE_RATIO,
    ):
        self.entries = list(entries)
        self.threshold = threshold
        self.high_confidence = high_confidence
        self.category_boost = category_boost
        self.suspicious_ratio = suspicious_ratio

    def find_best_match(self, item: ExtractedItem) -> Optional[MatchCandidate]:
        category = item.category.value
        same_category = [e for e in self.entries if _same_category(e, category)]

        best: Optional[MatchCandidate] = None
        for search_set in (same_category, self.entries):
            for entry in search_set:
                boost = self.category_boost if _same_category(entry, category) else 0.0
                total = fuzzy_score(item.item_name, entry.item_name) + boost
                if total >= self.threshold and (best is None or total > best.score):
                    best = MatchCandidate(entry=entry, score=total)

            if best is not None and best.score > self.high_confidence:
                break

        return best

    def compare_item(self, item: ExtractedItem) -> ComparisonResult:
        """Compare one item; lookup failures degrade to not_found."""
        unit_price = effective_unit_price(item)

        try:
            match = self.find_best_match(item)
        except Exception as e:
            logger.warning(f"Price lookup failed for '{item.item_name}': {e}", exc_info=True)
            match = None

        if match is None:
            return ComparisonResult(
                item_name=item.item_name,
                category=item.category,
                quantity=item.quantity,
                unit_price=unit_price,
                total_billed=item.total_billed,
                status=ComparisonStatus.NOT_FOUND,
                notes=NOTE_NOT_FOUND,
            )

        entry = match.entry
        status, overcharge, notes = classify_price(
            unit_price, entry.ceiling_price, item.quantity, self.suspicious_ratio
        )
        logger.debug(
            f"Matched '{item.item_name}' -> '{entry.item_name}' "
            f"(score={match.score:.2f}, status={status.value})"
        )
        return ComparisonResult(
            item_name=item.item_name,
            category=item.category,
            quantity=item.quantity,
            unit_price=unit_price,
            total_billed=item.total_billed,
            govt_ceiling_price=entry.ceiling_price,
            overcharge_amount=overcharge,
            status=status,
            price_source=f"{entry.source} ({entry.item_code or 'N/A'})",
            source_date=entry.published_date,
            notes=notes,
        )

    def compare(self, items: Iterable[ExtractedItem]) -> List[ComparisonResult]:
        return [self.compare_item(item) for item in items]


def compare_prices(items: Iterable[ExtractedItem], entries: Sequence[ReferencePriceEntry]) -> List[ComparisonResult]:
    """Compare every item against ``entries``."""
    return PriceMatcher(entries).compare(items)
