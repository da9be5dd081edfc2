"""Token-containment similarity between a billed item name and a catalog name.

Deliberately simple: hospitals abbreviate and reorder freely ("CBC" vs
"Complete Blood Count (CBC)", "Paracetamol 500mg Tab" vs "Paracetamol 500mg
Tablet"), and containment handles those cases without an embedding model.
"""

from __future__ import annotations

import re
from typing import List

MIN_WORD_LENGTH = 3


def _words(text: str) -> List[str]:
    return [w for w in re.split(r"\s+", text) if len(w) >= MIN_WORD_LENGTH]


def fuzzy_score(query: str, target: str) -> float:
    """Similarity in [0, 1].

    - identical (case-insensitive): 1.0
    - one contains the other: shorter length / longer length
    - otherwise: share of query words (3+ chars) contained in, or
      containing, some target word
    """
    q = (query or "").lower().strip()
    t = (target or "").lower().strip()
    if not q or not t:
        return 0.0

    if q == t:
        return 1.0

    if q in t or t in q:
        return min(len(q), len(t)) / max(len(q), len(t))

    q_words = _words(q)
    if not q_words:
        return 0.0
    t_words = _words(t)

    matched = sum(1 for qw in q_words if any(qw in tw or tw in qw for tw in t_words))
    return matched / len(q_words)
