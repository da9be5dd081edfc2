"""
LLM Bill Extractor - vision and text parsing of hospital bills.

Used by two tiers of the extraction cascade:
1. Vision: the bill image is sent directly to a vision-capable model
2. Text: OCR text is sent to the same model for structured extraction

The model must answer with a single JSON document. Responses are treated
as untrusted: the JSON object is dug out of any surrounding prose or code
fences, and every missing field gets a safe default rather than failing.

Supports two runtimes:
- gemini: Google Generative Language REST API (generateContent)
- ollama: local Ollama /api/generate (images via the "images" field)

Environment Variables:
    GEMINI_API_KEY: API key for the gemini runtime
    LLM_RUNTIME: Runtime to use (default: gemini)
    LLM_MODEL: Model name (default: gemini-2.5-flash-lite / llama3.2-vision)
    LLM_BASE_URL: Base URL (default: Google API / http://localhost:11434)
"""

from __future__ import annotations

import base64
import json
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import requests

from justbill.backends.base import BackendParse
from justbill.config import GEMINI_API_KEY, HTTP_TIMEOUT_SECONDS, LLM_BASE_URL, LLM_MODEL, LLM_RUNTIME
from justbill.extraction.numeric_guards import to_number_or_none
from justbill.models import BillHeader, ExtractedItem, ItemCategory

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================
DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash-lite",
    "ollama": "llama3.2-vision",
}
DEFAULT_BASE_URLS = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta",
    "ollama": "http://localhost:11434",
}
DEFAULT_HOSPITAL_NAME = "Unknown Hospital"
DEFAULT_CONFIDENCE = 0.0


# =============================================================================
# Prompts
# =============================================================================
RESPONSE_SCHEMA = """{
  "hospitalName": "name from the bill header",
  "billDate": "YYYY-MM-DD",
  "billNumber": "bill/invoice number or null",
  "patientName": "name or null",
  "gstin": "GST number or null",
  "items": [
    {
      "itemName": "full medicine/test/service name with dosage",
      "category": "Medicine|Test|Room|Consultation|Nursing|Surgery|Consumable|Equipment|Other",
      "quantity": number,
      "unit": "TAB|ML|STRIP|DAY|... or null",
      "mrp": number or null,
      "unitPrice": number,
      "discount": number or null,
      "totalBilled": number
    }
  ],
  "subtotal": number or null,
  "discount": number or null,
  "cgst": number or null,
  "sgst": number or null,
  "totalAmount": number,
  "isMedicalBill": true|false,
  "confidence": 0-100
}"""

EXTRACTION_RULES = """RULES:
1. Extract ONLY purchased items from the itemized table (medicines, tests, procedures, room, consumables).
2. IGNORE metadata: phone numbers, addresses, GST numbers, bill numbers, dates, patient details.
3. IGNORE summary rows: subtotal, CGST/SGST/IGST rows, grand total, balance, payment mode.
4. A 10-digit number is a phone number, never a price.
5. unitPrice is the price actually charged per unit (after any discount)."""

VISION_PROMPT = f"""You are a medical bill auditor reading a photo of an Indian hospital or pharmacy bill.

{EXTRACTION_RULES}
6. Set "isMedicalBill" to false if the document is not a medical/hospital/pharmacy bill.

Answer ONLY with JSON in this shape:
{RESPONSE_SCHEMA}

No explanations. No extra text."""

TEXT_PROMPT = f"""You are a medical bill text parser. Extract the billed items from this OCR text.

{EXTRACTION_RULES}

Answer ONLY with JSON in this shape:
{RESPONSE_SCHEMA}

EXAMPLE TEXT:
\"\"\"
Mediwell Pharmacy
Phone: 9876543210
Bill No: 2304    Date: 24/12/2024
S.No  Description              Qty  MRP   Disc%  Price   Amount
1     OXYFLOXIN-100 TAB        1    320   22%    249.60  249.60
2     PARACETAMOL-500 MG TAB   1    13    26%    9.62    9.62
Subtotal: 259.22
CGST (2.5%): 6.48
SGST (2.5%): 6.48
Grand Total: 272.00
\"\"\"

CORRECT ANSWER contains exactly 2 items: "OXYFLOXIN-100 TAB" (quantity 1, mrp 320,
unitPrice 249.60, totalBilled 249.60) and "PARACETAMOL-500 MG TAB" (quantity 1,
mrp 13, unitPrice 9.62, totalBilled 9.62), with cgst 6.48, sgst 6.48, totalAmount 272.00.

OCR TEXT:
"""


# =============================================================================
# Response parsing
# =============================================================================
def extract_json_object(response_text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Pull a JSON object out of a model response.

    Prefers a ```json fenced block; otherwise takes everything between the
    first "{" and the last "}".
    """
    if not response_text:
        return None

    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", response_text, re.DOTALL | re.IGNORECASE)
    if fenced:
        candidate = fenced.group(1)
    else:
        start_idx = response_text.find("{")
        end_idx = response_text.rfind("}") + 1
        if start_idx == -1 or end_idx == 0 or end_idx <= start_idx:
            return None
        candidate = response_text[start_idx:end_idx]

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"LLM returned unparseable JSON: {e}")
        return None
    return data if isinstance(data, dict) else None


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None
    return text


def _normalize_item(raw: Dict[str, Any]) -> Optional[ExtractedItem]:
    name = _text_or_none(raw.get("itemName") or raw.get("item_name") or raw.get("description"))
    if not name:
        return None

    quantity = to_number_or_none(raw.get("quantity")) or 1
    total = to_number_or_none(raw.get("totalBilled")) or 0.0
    unit_price = to_number_or_none(raw.get("unitPrice")) or 0.0
    if not unit_price and total:
        unit_price = total / max(quantity, 1)
    if not total:
        total = unit_price * max(quantity, 1)

    return ExtractedItem(
        raw_text=name,
        item_name=name,
        category=ItemCategory.coerce(raw.get("category")),
        quantity=quantity,
        unit=_text_or_none(raw.get("unit")),
        mrp=to_number_or_none(raw.get("mrp")),
        discount=to_number_or_none(raw.get("discount")),
        unit_price=unit_price,
        total_billed=total,
    )


def normalize_bill(data: Optional[Dict[str, Any]]) -> BackendParse:
    """Fill defaults for a model's bill JSON and convert it to a BackendParse."""
    data = data or {}

    header = BillHeader(
        hospital_name=_text_or_none(data.get("hospitalName")) or DEFAULT_HOSPITAL_NAME,
        bill_date=_text_or_none(data.get("billDate")) or date.today().isoformat(),
        bill_number=_text_or_none(data.get("billNumber")),
        patient_name=_text_or_none(data.get("patientName")),
        gstin=_text_or_none(data.get("gstin")),
        gross_total=to_number_or_none(data.get("subtotal")),
        net_total=to_number_or_none(data.get("totalAmount")),
        discount=to_number_or_none(data.get("discount")),
        cgst=to_number_or_none(data.get("cgst")),
        sgst=to_number_or_none(data.get("sgst")),
    )

    items: List[ExtractedItem] = []
    raw_items = data.get("items")
    if isinstance(raw_items, list):
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            item = _normalize_item(raw)
            if item is not None:
                items.append(item)

    is_medical = data.get("isMedicalBill")
    confidence = to_number_or_none(data.get("confidence"))

    return BackendParse(
        header=header,
        items=items,
        confidence=confidence if confidence is not None else DEFAULT_CONFIDENCE,
        is_medical_bill=is_medical if isinstance(is_medical, bool) else None,
    )


# =============================================================================
# Client
# =============================================================================
class LLMBillExtractor:
    """
    Extracts bill JSON from images or OCR text using an LLM runtime.

    Features:
    - Strict JSON-only prompts with low temperature
    - Gemini REST and Ollama runtimes
    - (text, error) call results; failures become an empty BackendParse
    """

    def __init__(
        self,
        runtime: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.runtime = (runtime or LLM_RUNTIME or "gemini").lower()
        self.model = model or LLM_MODEL or DEFAULT_MODELS.get(self.runtime, "")
        self.base_url = (base_url or LLM_BASE_URL or DEFAULT_BASE_URLS.get(self.runtime, "")).rstrip("/")
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

        logger.info(
            f"LLMBillExtractor initialized: runtime={self.runtime}, "
            f"model={self.model}, base_url={self.base_url}"
        )

    def _call_gemini(self, prompt: str, image_b64: Optional[str], mime_type: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        if image_b64:
            parts.append({"inline_data": {"mime_type": mime_type or "image/jpeg", "data": image_b64}})
        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {"temperature": 0.1},
        }

        try:
            response = requests.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
            response.raise_for_status()

            result = response.json()
            candidates = result.get("candidates") or []
            if not candidates:
                return None, "No candidates in Gemini response"
            content_parts = (candidates[0].get("content") or {}).get("parts") or []
            text = "".join(p.get("text", "") for p in content_parts if isinstance(p, dict))
            return text, None

        except requests.exceptions.Timeout:
            return None, f"Timeout calling {self.model}"
        except requests.exceptions.RequestException as e:
            return None, f"Request failed for {self.model}: {e}"
        except ValueError as e:
            return None, f"Invalid JSON envelope from {self.model}: {e}"

    def _call_ollama(self, prompt: str, image_b64: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        url = f"{self.base_url}/api/generate"
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {"temperature": 0.1},
        }
        if image_b64:
            payload["images"] = [image_b64]

        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()

            result = response.json()
            return result.get("response", ""), None

        except requests.exceptions.Timeout:
            return None, f"Timeout calling {self.model}"
        except requests.exceptions.RequestException as e:
            return None, f"Request failed for {self.model}: {e}"
        except ValueError as e:
            return None, f"Invalid JSON envelope from {self.model}: {e}"

    def _call_llm(self, prompt: str, image_b64: Optional[str] = None, mime_type: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
        if self.runtime == "gemini":
            return self._call_gemini(prompt, image_b64, mime_type)
        elif self.runtime == "ollama":
            return self._call_ollama(prompt, image_b64)
        else:
            return None, f"Unsupported runtime: {self.runtime}"

    def _parse(self, prompt: str, image_b64: Optional[str] = None, mime_type: Optional[str] = None) -> BackendParse:
        response_text, error = self._call_llm(prompt, image_b64, mime_type)
        if error is not None:
            logger.warning(error)
            return BackendParse(error=error)

        data = extract_json_object(response_text)
        if data is None:
            return BackendParse(error="No JSON object in LLM response")

        result = normalize_bill(data)
        logger.info(
            f"LLM extraction: hospital={result.header.hospital_name}, "
            f"items={len(result.items)}, is_medical_bill={result.is_medical_bill}"
        )
        return result

    def extract_from_image(self, data: bytes, mime_type: str) -> BackendParse:
        image_b64 = base64.b64encode(data).decode("ascii")
        return self._parse(VISION_PROMPT, image_b64, mime_type)

    def extract_from_text(self, ocr_text: str) -> BackendParse:
        return self._parse(TEXT_PROMPT + ocr_text)
