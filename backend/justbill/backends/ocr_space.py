"""
OCR.space cloud OCR backend.

Sends the bill as a base64 data URL to the OCR.space parse endpoint
(engine 2, which reads receipts best). The API reports no confidence, so a
successful parse is given a fixed estimate.

Environment Variables:
    OCR_SPACE_API_KEY: API key (default: the public "helloworld" demo key)
    OCR_SPACE_ENDPOINT: Parse endpoint (default: https://api.ocr.space/parse/image)
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from typing import Any, Dict

import requests

from justbill.backends.base import OcrResult
from justbill.config import HTTP_TIMEOUT_SECONDS, OCR_SPACE_API_KEY, OCR_SPACE_ENDPOINT

logger = logging.getLogger(__name__)

OCR_SPACE_CONFIDENCE = 85.0


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename or "")
    return mime_type or "image/jpeg"


def _error_text(value: Any, default: str) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v) or default
    return str(value) if value else default


def parse_ocr_space_response(data: Dict[str, Any]) -> OcrResult:
    """Map an OCR.space JSON response onto OcrResult."""
    if data.get("IsErroredOnProcessing") or data.get("OCRExitCode") != 1:
        return OcrResult(
            success=False,
            error=_error_text(data.get("ErrorMessage"), "OCR processing failed"),
        )

    results = data.get("ParsedResults") or []
    parsed = results[0] if results else None
    if not parsed or parsed.get("FileParseExitCode") != 1:
        message = parsed.get("ErrorMessage") if parsed else None
        return OcrResult(success=False, error=_error_text(message, "Failed to parse image"))

    return OcrResult(success=True, text=parsed.get("ParsedText", "") or "", confidence=OCR_SPACE_CONFIDENCE)


class OcrSpaceClient:
    """Client for the OCR.space parse/image endpoint."""

    def __init__(self, api_key: str = OCR_SPACE_API_KEY, endpoint: str = OCR_SPACE_ENDPOINT, timeout: float = HTTP_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout

    def recognize(self, data: bytes, filename: str) -> OcrResult:
        mime_type = guess_mime_type(filename)
        payload = {
            "base64Image": f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}",
            "language": "eng",
            "isOverlayRequired": "false",
            "detectOrientation": "true",
            "scale": "true",
            "OCREngine": "2",
        }

        try:
            response = requests.post(
                self.endpoint,
                headers={"apikey": self.api_key},
                data=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.Timeout:
            return OcrResult(success=False, error="Timeout calling OCR.space")
        except requests.exceptions.RequestException as e:
            return OcrResult(success=False, error=f"OCR request failed: {e}")
        except ValueError as e:
            return OcrResult(success=False, error=f"OCR.space returned invalid JSON: {e}")

        result = parse_ocr_space_response(body if isinstance(body, dict) else {})
        if result.success:
            logger.info(f"OCR.space recognized {len(result.text)} characters")
        else:
            logger.warning(f"OCR.space failed: {result.error}")
        return result
