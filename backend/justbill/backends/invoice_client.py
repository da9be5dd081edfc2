"""
Structured invoice extraction (Mindee Invoice API v4).

Posts the raw document and maps the prediction onto BillHeader and
ExtractedItem. The total tax is split evenly into CGST and SGST since the
API reports a single figure.

Environment Variables:
    MINDEE_API_KEY: API key; the tier is disabled when unset
    MINDEE_ENDPOINT: Prediction endpoint (default: Invoice v4)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from justbill.backends.base import BackendParse
from justbill.config import HTTP_TIMEOUT_SECONDS, MINDEE_ENDPOINT
from justbill.extraction.categorizer import categorize
from justbill.extraction.numeric_guards import to_number_or_none
from justbill.extraction.regex_parser import parse_indian_date
from justbill.models import BillHeader, ExtractedItem

logger = logging.getLogger(__name__)

CONFIDENCE_WITH_ITEMS = 90
CONFIDENCE_WITHOUT_ITEMS = 70


def _field_value(prediction: Dict[str, Any], name: str) -> Any:
    value = prediction.get(name)
    if isinstance(value, dict):
        return value.get("value")
    return value


def _iso_date(value: Any) -> Optional[str]:
    if not value:
        return None
    text = str(value).strip()
    # The API already returns YYYY-MM-DD
    if len(text) >= 10 and text[4] == "-" and text[7] == "-":
        return text[:10]
    return parse_indian_date(text)


def prediction_to_parse(prediction: Dict[str, Any]) -> BackendParse:
    """Map a Mindee invoice prediction onto the common backend result."""
    total_amount = to_number_or_none(_field_value(prediction, "total_amount"))
    total_tax = to_number_or_none(_field_value(prediction, "total_tax"))

    header = BillHeader(
        hospital_name=_field_value(prediction, "supplier_name") or None,
        bill_date=_iso_date(_field_value(prediction, "date")),
        bill_number=_field_value(prediction, "invoice_number") or None,
        gross_total=to_number_or_none(_field_value(prediction, "total_net")),
        net_total=total_amount,
    )
    if total_tax:
        header.cgst = round(total_tax / 2, 2)
        header.sgst = round(total_tax / 2, 2)

    items: List[ExtractedItem] = []
    for raw in prediction.get("line_items") or []:
        description = str(raw.get("description") or "").strip()
        quantity = to_number_or_none(raw.get("quantity")) or 1
        unit_price = to_number_or_none(raw.get("unit_price")) or 0.0
        total = to_number_or_none(raw.get("total_amount")) or 0.0
        items.append(
            ExtractedItem(
                raw_text=description,
                item_name=description or "Unknown Item",
                category=categorize(description),
                quantity=quantity,
                unit_price=unit_price,
                total_billed=total,
            )
        )

    return BackendParse(
        header=header,
        items=items,
        confidence=CONFIDENCE_WITH_ITEMS if items else CONFIDENCE_WITHOUT_ITEMS,
    )


class MindeeInvoiceClient:
    """Client for the Mindee invoice prediction endpoint."""

    def __init__(self, api_key: str, endpoint: str = MINDEE_ENDPOINT, timeout: float = HTTP_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout

    def _post(self, data: bytes, filename: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        try:
            response = requests.post(
                self.endpoint,
                headers={"Authorization": f"Token {self.api_key}"},
                files={"document": (filename, data)},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json(), None
        except requests.exceptions.Timeout:
            return None, "Timeout calling invoice API"
        except requests.exceptions.RequestException as e:
            return None, f"Invoice API request failed: {e}"
        except ValueError as e:
            return None, f"Invoice API returned invalid JSON: {e}"

    def parse_invoice(self, data: bytes, filename: str) -> BackendParse:
        body, error = self._post(data, filename)
        if error:
            logger.warning(error)
            return BackendParse(error=error)

        inference = (body or {}).get("document", {}).get("inference", {}) or {}
        pages = inference.get("pages") or []
        prediction = inference.get("prediction") or (pages[0].get("prediction") if pages else None)
        if not prediction:
            return BackendParse(error="No prediction in invoice API response")

        result = prediction_to_parse(prediction)
        logger.info(
            f"Invoice API: supplier={result.header.hospital_name}, items={len(result.items)}"
        )
        return result
