"""Keyword classification of item text into an ItemCategory.

Shared by the regex parser, the LLM result normalizer and the sanitizer so
that every tier categorizes the same way.
"""

from __future__ import annotations

import re
from typing import Optional

from justbill.extraction.lexicons import CATEGORY_KEYWORDS, SECTION_HEADERS, word_start_pattern
from justbill.models import ItemCategory


def detect_category(text: str) -> Optional[ItemCategory]:
    """First category whose keyword table hits ``text``; None when nothing does."""
    if not text:
        return None
    for category, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if re.search(word_start_pattern(keyword), text, re.IGNORECASE):
                return ItemCategory(category)
    return None


def categorize(text: str, default: ItemCategory = ItemCategory.OTHER) -> ItemCategory:
    return detect_category(text) or default


def is_section_header(line: str) -> bool:
    """Section headings ("PHARMACY", "ROOM CHARGES") switch the current category."""
    lower = line.lower()
    if re.search(r"\d+\.\d{2}", lower):
        return False
    return any(header in lower for header in SECTION_HEADERS)
