"""
Pattern/Regex Fallback Parser.

Turns raw OCR text from an Indian hospital bill into header fields and
line items without any network call. This is the last tier of the
extraction cascade, so it must return something for any input: every
field that cannot be found is simply left as None, and a line that
cannot be parsed is skipped.

Line handling:
- Section headings (PHARMACY, LABORATORY, ROOM CHARGES, ...) set the
  category for the lines that follow them.
- Lines matched by LINE_SKIP_PATTERNS (totals, taxes, addresses,
  demographics, contact details) are never items.
- Dosages ("500mg"), dates and alphanumeric codes ("D3", "T4") are not
  read as amounts.
- Quantities come from "Qty: 20", "(3 days × 3500)", "(2 visits)", "10 nos".
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from justbill.extraction.categorizer import detect_category, is_section_header
from justbill.extraction.lexicons import (
    DOSAGE_PATTERN,
    GSTIN_PATTERN,
    HIGH_VALUE_CONTEXT,
    LINE_SKIP_PATTERNS,
    compiled,
    find_keywords,
)
from justbill.extraction.numeric_guards import MAX_PLAUSIBLE_UNIT_PRICE
from justbill.models import BillHeader, ExtractedItem, ItemCategory

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================
_NUM = r"\d+(?:,\d{3})*(?:\.\d+)?"
_CURRENCY = r"(?:₹|\brs\.?|\binr)"

DATE_PATTERN = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})\b")
ORDINAL_PATTERN = re.compile(r"^\s*\d{1,3}\s*[.)]\s+")
AMOUNT_TOKEN_PATTERN = re.compile(r"(?<![A-Za-z\d.,])\d+(?:,\d{3})*(?:\.\d{1,2})?(?![A-Za-z\d])")
PERCENT_PATTERN = re.compile(r"\d+(?:\.\d+)?\s*%")

QTY_LABEL_PATTERN = re.compile(r"\b(?:qty|quantity)\s*[:\-]?\s*(\d+)\b", re.IGNORECASE)
QTY_UNIT_PATTERN = re.compile(r"\b(\d+)\s*(?:nos?|units?|pcs?|days?|visits?)\b", re.IGNORECASE)
RATE_PATTERN = re.compile(
    rf"\b(\d+)\s*(?:days?|visits?|nos?|units?|pcs?)?\s*[x×\*]\s*{_CURRENCY}?\s*({_NUM})",
    re.IGNORECASE,
)
MRP_PATTERN = re.compile(rf"\b(?:mrp|m\.r\.p\.?)\s*[:\-]?\s*{_CURRENCY}?\s*({_NUM})", re.IGNORECASE)

BILL_NUMBER_PATTERN = re.compile(
    r"\b(?:bill|invoice|inv)\s*(?:no|number|#)\.?\s*[:#\-]?\s*([A-Z0-9][A-Z0-9\-/]*)",
    re.IGNORECASE,
)
PATIENT_NAME_PATTERN = re.compile(
    r"^\s*(?:patient\s*name|name)\s*[:\-]\s*([A-Za-z][A-Za-z .']+?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)

GROSS_TOTAL_PATTERN = re.compile(
    rf"\b(?:gross|sub)\s*-?\s*total\s*[:\-]?\s*{_CURRENCY}?\s*({_NUM})", re.IGNORECASE
)
NET_TOTAL_PATTERN = re.compile(
    rf"\b(?:net|grand|final)\s*(?:total|payable|amount)\s*[:\-]?\s*{_CURRENCY}?\s*({_NUM})", re.IGNORECASE
)
DISCOUNT_TOTAL_PATTERN = re.compile(
    rf"\bdiscount\s*[:\-]?\s*-?\s*{_CURRENCY}?\s*({_NUM})", re.IGNORECASE
)
CGST_PATTERN = re.compile(
    rf"\bcgst\s*(?:\(\s*[\d.]+\s*%\s*\))?\s*[:\-]?\s*{_CURRENCY}?\s*({_NUM})", re.IGNORECASE
)
SGST_PATTERN = re.compile(
    rf"\bsgst\s*(?:\(\s*[\d.]+\s*%\s*\))?\s*[:\-]?\s*{_CURRENCY}?\s*({_NUM})", re.IGNORECASE
)

# Stripped from the line to leave the descriptive item name
NAME_NOISE_PATTERNS = [
    re.compile(r"\b(?:qty|quantity)\s*[:\-]?\s*\d+\b", re.IGNORECASE),
    re.compile(
        rf"\b(?:mrp|m\.r\.p\.?|rate|price|amount|amt|total|sub-?total)\s*[:\-]?\s*{_CURRENCY}?\s*-?{_NUM}",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\(\s*\d+\s*(?:days?|visits?|nos?|units?|pcs?)?\s*(?:[x×\*]\s*{_CURRENCY}?\s*{_NUM})?\s*\)",
        re.IGNORECASE,
    ),
    re.compile(rf"{_CURRENCY}\s*{_NUM}", re.IGNORECASE),
    re.compile(r"(?<![A-Za-z\d])\d+(?:,\d{3})*\.\d{1,2}(?![A-Za-z\d])"),
    re.compile(r"\b\d+\s*(?:nos?|units?|pcs?)\b", re.IGNORECASE),
]
TRAILING_NUMBERS_PATTERN = re.compile(r"(?:\s+\d+(?:,\d{3})*)+\s*$")


@dataclass
class ParsedBill:
    """Header fields and items recovered from OCR text."""
    header: BillHeader = field(default_factory=BillHeader)
    items: List[ExtractedItem] = field(default_factory=list)


# =============================================================================
# Small helpers
# =============================================================================
def _to_float(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    try:
        return float(text.replace(",", ""))
    except ValueError:
        return None


def _search_amount(pattern: re.Pattern, text: str) -> Optional[float]:
    match = pattern.search(text)
    return _to_float(match.group(1)) if match else None


def display_case(name: str) -> str:
    """Title-case names that arrive fully upper-case; keep everything else."""
    if name != name.upper() or not re.search(r"[A-Z]", name):
        return name
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))


def parse_indian_date(text: str) -> Optional[str]:
    """Parse DD/MM/YYYY (or DD-MM-YY) into an ISO date string."""
    match = DATE_PATTERN.search(text or "")
    if not match:
        return None

    day, month, year = (int(g) for g in match.groups())
    if year < 100:
        year += 2000
    if day > 31 or month > 12:
        day, month = month, day

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


# =============================================================================
# Header extraction
# =============================================================================
def _hospital_name(lines: List[str]) -> Optional[str]:
    for line in lines[:5]:
        if (
            len(line) > 5
            and line == line.upper()
            and re.search(r"[A-Z]{3}", line)
            and not re.search(r"\d{1,2}[/\-]\d{1,2}", line)
        ):
            return display_case(line)
    return None


def _bill_number(text: str) -> Optional[str]:
    for match in BILL_NUMBER_PATTERN.finditer(text):
        candidate = match.group(1).strip("-/")
        if re.search(r"\d", candidate):
            return candidate
    return None


def extract_header(text: str, lines: List[str]) -> BillHeader:
    header = BillHeader()
    header.hospital_name = _hospital_name(lines)

    gstin = re.search(GSTIN_PATTERN, text.upper())
    header.gstin = gstin.group(1) if gstin else None

    dates = DATE_PATTERN.findall(text)
    if dates:
        header.bill_date = parse_indian_date("/".join(dates[-1]))

    header.bill_number = _bill_number(text)

    patient = PATIENT_NAME_PATTERN.search(text)
    header.patient_name = patient.group(1).strip() if patient else None

    header.gross_total = _search_amount(GROSS_TOTAL_PATTERN, text)
    header.net_total = _search_amount(NET_TOTAL_PATTERN, text)
    header.discount = _search_amount(DISCOUNT_TOTAL_PATTERN, text)
    header.cgst = _search_amount(CGST_PATTERN, text)
    header.sgst = _search_amount(SGST_PATTERN, text)
    return header


# =============================================================================
# Line items
# =============================================================================
def should_skip_line(line: str) -> bool:
    return any(p.search(line) for p in compiled(LINE_SKIP_PATTERNS))


def _amount_tokens(body: str) -> List[float]:
    scrubbed = re.sub(DOSAGE_PATTERN, " ", body, flags=re.IGNORECASE)
    scrubbed = DATE_PATTERN.sub(" ", scrubbed)
    scrubbed = PERCENT_PATTERN.sub(" ", scrubbed)
    amounts = []
    for token in AMOUNT_TOKEN_PATTERN.findall(scrubbed):
        value = _to_float(token)
        if value is not None and value > 0:
            amounts.append(value)
    return amounts


def _detect_quantity(body: str) -> Tuple[int, Optional[float]]:
    """Quantity on the line and, for "N × P" forms, the rate P."""
    rate_match = RATE_PATTERN.search(body)
    if rate_match:
        return max(int(rate_match.group(1)), 1), _to_float(rate_match.group(2))

    for pattern in (QTY_LABEL_PATTERN, QTY_UNIT_PATTERN):
        match = pattern.search(body)
        if match:
            return max(int(match.group(1)), 1), None
    return 1, None


def clean_item_name(body: str) -> Optional[str]:
    name = body
    for pattern in NAME_NOISE_PATTERNS:
        name = pattern.sub(" ", name)
    name = re.sub(r"\s+", " ", name).strip()
    name = TRAILING_NUMBERS_PATTERN.sub("", name)
    name = name.strip(" :-|,;")

    if len(name) < 3:
        return None
    if not re.search(r"[A-Za-z]", name):
        return None
    alnum = len(re.findall(r"[A-Za-z0-9]", name))
    if alnum / len(name) < 0.5:
        return None
    return display_case(name)


def parse_line_item(line: str, current_category: ItemCategory = ItemCategory.OTHER) -> Optional[ExtractedItem]:
    """Parse one OCR line into an item, or None when it is not one."""
    body = ORDINAL_PATTERN.sub("", line)

    amounts = _amount_tokens(body)
    if not amounts:
        return None

    if any(a > MAX_PLAUSIBLE_UNIT_PRICE for a in amounts):
        if not find_keywords(line, HIGH_VALUE_CONTEXT):
            return None

    name = clean_item_name(body)
    if not name:
        return None

    quantity, rate = _detect_quantity(body)
    mrp = _search_amount(MRP_PATTERN, body)

    total = amounts[-1]
    unit_price = rate or mrp or total / quantity

    if len(amounts) >= 3 and amounts[0] == quantity:
        unit_price, total = amounts[1], amounts[2]
    elif len(amounts) == 2 and quantity > 1 and amounts[0] == quantity:
        unit_price, total = amounts[1] / quantity, amounts[1]
    elif len(amounts) == 2 and amounts[1] >= amounts[0]:
        unit_price, total = amounts[0], amounts[1]

    category = detect_category(name) or current_category

    return ExtractedItem(
        raw_text=line,
        item_name=name,
        category=category,
        quantity=quantity,
        mrp=mrp,
        unit_price=round(unit_price, 2),
        total_billed=round(total, 2),
    )


def parse_bill_text(text: Optional[str]) -> ParsedBill:
    """Parse OCR text into header fields and items. Never raises."""
    result = ParsedBill()
    if not text or not isinstance(text, str):
        return result

    lines = [l.strip() for l in text.splitlines() if l.strip()]

    try:
        result.header = extract_header(text, lines)
    except Exception as e:
        logger.warning(f"Header extraction failed: {e}")

    current_category = ItemCategory.OTHER
    for line in lines:
        try:
            if should_skip_line(line):
                continue
            if is_section_header(line):
                current_category = detect_category(line) or current_category
                continue
            item = parse_line_item(line, current_category)
        except Exception as e:
            logger.debug(f"Skipping unparseable line '{line}': {e}")
            continue
        if item is not None:
            result.items.append(item)

    logger.info(f"Regex parser found {len(result.items)} candidate items")
    return result
