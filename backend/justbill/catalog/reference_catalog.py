"""
Reference Price Catalog.

Government ceiling prices (NPPA medicines, CGHS procedures/tests/rooms),
plus the state and category tables, loaded once from the JSON seed files
under ``justbill/data`` and queried in memory. Nothing here is mutated
after loading; a single instance is shared by all requests.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from justbill.config import CATEGORIES_FILE, GOVT_PRICES_FILE, STATES_FILE
from justbill.exceptions import CatalogUnavailableError
from justbill.models import CategoryInfo, ReferencePriceEntry, StateInfo

logger = logging.getLogger(__name__)


def _read_json_list(path: Path) -> List[dict]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CatalogUnavailableError(f"Seed file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise CatalogUnavailableError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, list):
        raise CatalogUnavailableError(f"Expected a JSON list in {path}")
    return data


class ReferenceCatalog:
    """Read-only, in-memory view of the seeded reference data."""

    def __init__(
        self,
        entries: Sequence[ReferencePriceEntry],
        states: Sequence[StateInfo] = (),
        categories: Sequence[CategoryInfo] = (),
    ):
        self._entries: Tuple[ReferencePriceEntry, ...] = tuple(entries)
        self._states: Tuple[StateInfo, ...] = tuple(states)
        self._categories: Tuple[CategoryInfo, ...] = tuple(categories)
        self._states_by_id: Dict[int, StateInfo] = {s.id: s for s in self._states}

    @classmethod
    def from_files(
        cls,
        prices_path: Path = GOVT_PRICES_FILE,
        states_path: Path = STATES_FILE,
        categories_path: Path = CATEGORIES_FILE,
    ) -> "ReferenceCatalog":
        try:
            entries = [ReferencePriceEntry(**row) for row in _read_json_list(prices_path)]
            states = [
                StateInfo(id=i, **row)
                for i, row in enumerate(_read_json_list(states_path), start=1)
            ]
            categories = [
                CategoryInfo(id=i, **row)
                for i, row in enumerate(_read_json_list(categories_path), start=1)
            ]
        except (ValidationError, TypeError) as e:
            raise CatalogUnavailableError(f"Invalid reference data: {e}") from e

        logger.info(
            f"Loaded reference catalog: {len(entries)} prices, "
            f"{len(states)} states, {len(categories)} categories"
        )
        return cls(entries, states, categories)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def entries(self) -> Tuple[ReferencePriceEntry, ...]:
        return self._entries

    def entries_for_state(self, state_code: Optional[str]) -> List[ReferencePriceEntry]:
        """Entries that apply in ``state_code``; national entries always apply."""
        if not state_code:
            return list(self._entries)
        code = state_code.upper()
        return [e for e in self._entries if e.state_code is None or e.state_code.upper() == code]

    def states(self) -> List[StateInfo]:
        return list(self._states)

    def categories(self) -> List[CategoryInfo]:
        return list(self._categories)

    def state_by_id(self, state_id: int) -> Optional[StateInfo]:
        return self._states_by_id.get(state_id)

    def reference_info(self) -> dict:
        """Per-source entry count and latest published date."""
        sources: Dict[str, dict] = {}
        for entry in self._entries:
            info = sources.setdefault(entry.source, {"source": entry.source, "item_count": 0, "latest_date": None})
            info["item_count"] += 1
            # ISO dates compare correctly as strings
            if entry.published_date and (
                info["latest_date"] is None or entry.published_date > info["latest_date"]
            ):
                info["latest_date"] = entry.published_date

        return {
            "sources": sorted(sources.values(), key=lambda s: s["source"]),
            "total_items": len(self._entries),
        }

    def __len__(self) -> int:
        return len(self._entries)


def load_catalog() -> ReferenceCatalog:
    """Load the catalog from the packaged seed files."""
    return ReferenceCatalog.from_files()
