"""
Keyword and pattern tables used by the extraction layer.

Everything here is data: the parser, sanitizer, categorizer and bill-type
validator only iterate these tables, so a new keyword never needs a code
change. Matching helpers live at the bottom of the module.

Matching conventions:
- CATEGORY_KEYWORDS match at a word start ("tab" hits "Tablet", not "vegetable").
- METADATA_KEYWORDS match as whole words/phrases ("pan no" but not "Pantoprazole").
- Validator keywords are substrings, except keywords of 3 characters or
  fewer which must not touch another letter ("mg" hits "500mg", not "among").
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Pattern, Tuple


# =============================================================================
# Categories
# =============================================================================
# Order matters: the first category with a hit wins.
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "Medicine": [
        "pharmacy", "medicine", "drug", "tablet", "tab", "capsule", "cap",
        "injection", "inj", "syrup", "suspension", "drops", "ointment", "gel",
        "cream", "inhaler", "sachet", "saline", "dextrose", "ringer",
        "paracetamol", "amoxicillin", "omeprazole", "pantoprazole",
    ],
    "Test": [
        "laboratory", "lab", "test", "investigation", "pathology", "radiology",
        "x-ray", "xray", "ct scan", "mri", "ultrasound", "usg", "echo", "ecg",
        "ekg", "blood", "cbc", "lipid", "liver", "kidney", "thyroid", "urine",
        "stool", "hba1c", "tsh",
    ],
    "Room": [
        "room", "bed", "ward", "icu", "nicu", "picu", "general ward",
        "semi-private", "private", "deluxe", "suite",
    ],
    "Consultation": [
        "consultation", "consult", "visit", "opd", "doctor fee", "physician",
        "specialist",
    ],
    "Nursing": ["nursing", "nurse", "attendant"],
    "Surgery": [
        "surgery", "operation", "ot charges", "theatre", "anesthesia",
        "anaesthesia", "procedure",
    ],
    "Consumable": [
        "consumable", "disposable", "syringe", "cannula", "catheter", "gloves",
        "mask", "gown", "cotton", "bandage", "dressing", "iv cannula",
        "urine bag", "nebulizer kit",
    ],
    "Equipment": ["equipment", "ventilator", "monitor", "oxygen", "nebulizer"],
}

# A line is a section header if it mentions one of these and carries no amount.
SECTION_HEADERS = [
    "pharmacy", "laboratory", "room charges", "consultation", "nursing",
    "consumables", "equipment", "medicines",
]


# =============================================================================
# Regex parser: lines that are never billable items
# =============================================================================
LINE_SKIP_PATTERNS = [
    # Totals, taxes and payment rows
    r"^(?:total|net|gross|discount|cgst|sgst|igst|gst|subtotal|payable|payment)\b",
    r"\b(?:pharmacy|lab|laboratory|section|sub|gross|net|grand)\s*total\b",
    r"^round(?:ing)?\s*off\b",
    # Document metadata
    r"^(?:receipt|invoice|gstin|date)\b",
    r"^bill\s*(?:no|number|date|details)?\b",
    r"\b(?:admit\w*|admission|discharge\w*)\b",
    r"\b(?:visit|consultation)\s*date\b",
    # Demographics
    r"^(?:patient|name)\b",
    r"\b(?:male|female|gender|age|dob|birth)\b",
    r"\b(?:aadhaa?r|pan\s*no|uid|uhid)\b",
    r"^(?:dr\.?|doctor|physician|surgeon|consultant|ref(?:erred)?\s*by)\s*(?:name)?\s*[:\-]",
    # Address fragments
    r"^(?:address|phone)\b",
    r"\b(?:h\s*no\.?|house\s*no|block|sector|street|lane|road|nagar|pincode|pin\s*code)\b",
    r"\b(?:delhi|mumbai|bangalore|bengaluru|kolkata|chennai|hyderabad|pune|india)\b",
    # Contact details
    r"\b(?:e-?mail|phone|mobile|tel|fax)\b",
    r"\d{10}",
    r"www\.|https?:|\.com\b|@",
    # Footer text
    r"\b(?:remarks|notes|thank\s*you|signature)\b",
    r"\b(?:terms|conditions|policy)\b",
]

# Lines with an amount above MAX_PLAUSIBLE_UNIT_PRICE survive only with one
# of these words on them.
HIGH_VALUE_CONTEXT = [
    "surgery", "operation", "transplant", "implant", "icu", "ventilator",
    "dialysis", "angioplasty", "bypass", "replacement", "chemotherapy",
]


# =============================================================================
# Item sanitizer: invoice metadata that gets misread as items
# =============================================================================
METADATA_KEYWORDS = [
    # Document identifiers
    "invoice", "bill no", "bill number", "receipt", "voucher", "ref no",
    # Tax identifiers
    "gst", "gstin", "tax id", "pan no", "pan number", "pan card",
    # Contact
    "phone", "mobile", "tel", "contact", "email", "e-mail", "website", "www",
    # Address
    "address", "street", "city", "pincode", "pin code",
    # Patient identifiers
    "patient id", "patient no", "uhid",
    # Totals and payments
    "subtotal", "sub-total", "sub total", "grand total", "net amount",
    "net payable", "amount payable", "balance", "amount paid", "paid by",
    "payment mode", "cash", "card", "upi", "online",
    # Tax rows
    "cgst", "sgst", "igst", "tax amount", "discount total", "total discount",
    # Footer
    "signature", "authorized", "authorised", "terms", "thank you", "visit again",
]

TOTAL_ROW_PATTERNS = [
    r"^\s*(?:sub|gross|net|grand|final|bill|invoice)[\s\-]*total\b",
    r"^\s*total\s*(?:amount|payable|due|bill|charges|value)?\s*[:\-]?\s*$",
    r"^\s*total\s*[:\-]",
    r"\btotal\s*$",
    r"^\s*(?:net|amount)\s*payable\b",
    r"^\s*round(?:ing)?\s*off\b",
]

# Name-level noise patterns
NUMERIC_ONLY_PATTERN = r"^[\d\s\-\(\)]+$"
PHONE_PATTERNS = [r"\d{10}", r"\b\d{3}[-\s]?\d{3}[-\s]?\d{4}\b"]
GSTIN_LIKE_PATTERN = r"\d{2}[A-Z]{5}\d{4}[A-Z]\d[A-Z\d]"
# Full 15-character GSTIN as printed on bills
GSTIN_PATTERN = r"\b(\d{2}[A-Z]{5}\d{4}[A-Z][A-Z\d]Z[A-Z\d])\b"

# Names that denote a discount line may carry a negative amount
DISCOUNT_PATTERN = r"\b(?:discount|rebate|concession|waiver)\b"


# =============================================================================
# Medical vocabulary (expensive-item exemption)
# =============================================================================
DOSAGE_PATTERN = r"\d+(?:\.\d+)?\s*(?:mg|ml|mcg|iu|gm|g|kg)\b"

MEDICAL_TERMS = [
    # Medicine forms
    "tablet", "tab", "capsule", "cap", "syrup", "suspension", "injection",
    "inj", "ointment", "cream", "gel", "drops", "inhaler", "spray", "powder",
    "sachet", "patch", "vial",
    # Tests
    "test", "blood", "urine", "x-ray", "xray", "scan", "mri", "ultrasound",
    "usg", "ecg", "ekg", "echo", "pathology", "hemoglobin", "glucose",
    "lipid", "thyroid", "liver", "kidney", "biopsy",
    # Procedures and high-value care
    "surgery", "surgical", "operation", "transplant", "implant", "stent",
    "dialysis", "chemotherapy", "angioplasty", "bypass", "replacement",
    "icu", "ventilator", "dressing", "bandage", "suture", "catheter",
    "cannula", "oxygen", "nebulization", "physiotherapy",
    # Room and services
    "room", "bed", "ward", "nursing", "consultation", "diet",
]

MEDICINE_NAMES = [
    "paracetamol", "amoxicillin", "azithromycin", "ciprofloxacin", "metformin",
    "omeprazole", "pantoprazole", "ranitidine", "atorvastatin", "aspirin",
    "ibuprofen", "diclofenac", "cefixime", "ceftriaxone", "ofloxacin",
    "oxyfloxin", "levofloxacin", "doxycycline", "metronidazole", "fluconazole",
    "acyclovir", "amlodipine", "atenolol", "losartan", "telmisartan", "insulin",
    "glimepiride", "sitagliptin", "cetirizine", "loratadine", "montelukast",
    "prednisolone", "dexamethasone", "hydrocortisone", "salbutamol",
    "budesonide", "formoterol", "multivitamin", "vitamin", "calcium", "iron",
    "folic", "saline", "dextrose", "ringer", "crocin", "dolo", "combiflam",
    "zifi", "monocef", "pantocid", "rantac", "gelusil",
]


# =============================================================================
# Bill-type validator vocabularies (disjoint)
# =============================================================================
MEDICAL_INDICATORS = [
    # Hospital/clinic identifiers
    "hospital", "clinic", "medical", "healthcare", "health centre",
    "nursing home", "diagnostic", "pathology", "laboratory", "lab report",
    # Document type indicators
    "patient", "admission", "discharge", "opd", "ipd", "inpatient",
    "outpatient", "prescription", "diagnosis", "treatment", "consultation",
    # Billing terms
    "bill", "invoice", "receipt", "charges", "pharmacy", "medicine", "drug",
    # Medical terms
    "doctor", "dr.", "physician", "surgeon", "specialist", "nursing", "ward",
    "icu", "ot", "operation theatre", "emergency",
    # Tests and procedures
    "x-ray", "xray", "mri", "ct scan", "ultrasound", "usg", "ecg", "ekg",
    "blood test", "urine test", "biopsy", "cbc", "hemoglobin",
    # Medications
    "tablet", "capsule", "injection", "syrup", "mg", "ml", "saline", "iv",
    # Registration/regulatory
    "uhid", "mr no", "reg no", "registration", "nabh", "nabl",
]

NON_MEDICAL_INDICATORS = [
    # Retail/shopping
    "grocery", "supermarket", "mart", "store", "retail", "shopping", "burger",
    "pizza", "coffee", "restaurant", "food", "beverage",
    # Utilities
    "electricity", "water bill", "gas bill", "internet", "mobile", "telecom",
    "broadband", "dth", "cable",
    # Transport
    "petrol", "diesel", "fuel", "airline", "flight", "railway", "bus ticket",
    "uber", "ola", "cab", "taxi",
    # Banking/financial
    "bank statement", "credit card", "loan", "emi", "insurance premium",
    # E-commerce
    "amazon", "flipkart", "myntra", "order id", "tracking", "delivery",
    # Home services
    "rent", "maintenance", "repair", "plumber", "electrician",
]

AMOUNT_HINT_PATTERN = r"₹\s*\d+|\brs\.?\s*\d+|\d+\.\d{2}"


# =============================================================================
# Matching helpers
# =============================================================================
@lru_cache(maxsize=None)
def _compile_all(patterns: Tuple[str, ...], flags: int = re.IGNORECASE) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, flags) for p in patterns)


def compiled(patterns: Iterable[str]) -> Tuple[Pattern, ...]:
    """Compile (and cache) a pattern table, case-insensitively."""
    return _compile_all(tuple(patterns))


def word_start_pattern(keyword: str) -> str:
    return r"\b" + re.escape(keyword)


def whole_word_pattern(keyword: str) -> str:
    return r"\b" + re.escape(keyword) + r"\b"


def indicator_pattern(keyword: str) -> str:
    if len(keyword) <= 3:
        return r"(?<![a-z])" + re.escape(keyword) + r"(?![a-z])"
    return re.escape(keyword)


def find_keywords(text: str, keywords: Iterable[str], to_pattern=whole_word_pattern) -> List[str]:
    """Return the keywords (in table order) that occur in ``text``."""
    if not text:
        return []
    found = []
    for keyword in keywords:
        if re.search(to_pattern(keyword), text, re.IGNORECASE):
            found.append(keyword)
    return found


def first_match(text: str, patterns: Iterable[str]) -> Optional[str]:
    """Return the first pattern in the table that matches ``text``."""
    for pattern in compiled(patterns):
        if pattern.search(text):
            return pattern.pattern
    return None


def matches_metadata(name: str) -> Optional[str]:
    """Metadata keyword or total-row pattern hit by an item name, if any."""
    hits = find_keywords(name, METADATA_KEYWORDS)
    if hits:
        return hits[0]
    return first_match(name, TOTAL_ROW_PATTERNS)


def is_medical_term(name: str) -> bool:
    """True when ``name`` carries medical vocabulary or a dosage."""
    if not name:
        return False
    if re.search(DOSAGE_PATTERN, name, re.IGNORECASE):
        return True
    if find_keywords(name, MEDICINE_NAMES, to_pattern=word_start_pattern):
        return True
    return bool(find_keywords(name, MEDICAL_TERMS, to_pattern=word_start_pattern))
