"""
Extraction Orchestrator - the tier cascade.

Tries the extraction backends in a fixed order and returns the first
non-empty, sanitized item list:

1. tier-1-invoice  structured invoice API on the raw upload
2. tier-2-vision   vision LLM on the raw upload
3. OCR             text recognition; failure aborts with ``ocr_failed``
4. validator       non-medical documents abort with ``not_medical_bill``
5. tier-3-text     LLM parse of the OCR text
6. tier-4-regex    pattern parser on the OCR text (always returns)

Without an upload the canned demo transcript goes straight to the pattern
parser ("demo-mock"). Each backend call runs under a bounded timeout; a
timeout, an exception or an empty result just moves on to the next tier.

Environment Variables:
    TIER_TIMEOUT_SECONDS: Upper bound for any single backend call (default: 60)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, TypeVar

from justbill import config
from justbill.backends.base import BackendParse, InvoiceBackend, OcrBackend, TextBackend, VisionBackend
from justbill.backends.invoice_client import MindeeInvoiceClient
from justbill.backends.llm_client import LLMBillExtractor
from justbill.backends.ocr_space import OcrSpaceClient
from justbill.backends.paddle_engine import PaddleOcrEngine
from justbill.exceptions import NotMedicalBillError, OcrFailedError
from justbill.extraction.bill_validator import validate_medical_bill
from justbill.extraction.regex_parser import parse_bill_text
from justbill.extraction.sanitizer import sanitize_items
from justbill.models import ExtractionResult, ParsingMethod

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEMO_CONFIDENCE = 90.0


@dataclass
class ExtractionBackends:
    """Configured backends; a None slot disables that tier."""
    invoice: Optional[InvoiceBackend] = None
    vision: Optional[VisionBackend] = None
    text: Optional[TextBackend] = None
    ocr: Optional[OcrBackend] = None


class ExtractionOrchestrator:
    """Runs the extraction cascade for one bill at a time."""

    def __init__(
        self,
        backends: ExtractionBackends,
        demo_text: str = "",
        tier_timeout: float = config.TIER_TIMEOUT_SECONDS,
    ):
        self.backends = backends
        self.demo_text = demo_text
        self.tier_timeout = tier_timeout

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _call_with_timeout(self, label: str, fn: Callable[[], T]) -> Optional[T]:
        """Run ``fn`` with the tier timeout; None on timeout or error."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"tier-{label}")
        future = executor.submit(fn)
        try:
            return future.result(timeout=self.tier_timeout)
        except FuturesTimeoutError:
            logger.warning(f"{label}: no answer within {self.tier_timeout}s, moving on")
            return None
        except Exception as e:
            logger.warning(f"{label}: backend raised {type(e).__name__}: {e}", exc_info=True)
            return None
        finally:
            # A hung backend thread is abandoned, not joined
            executor.shutdown(wait=False)

    def _accept(self, method: ParsingMethod, parse: Optional[BackendParse]) -> Optional[ExtractionResult]:
        if parse is None:
            return None
        if not parse.is_valid:
            logger.info(f"{method.value}: failed ({parse.error})")
            return None

        items = sanitize_items(parse.items, parse.header.net_total)
        if not items:
            logger.info(f"{method.value}: no usable items ({len(parse.items)} before sanitizing)")
            return None

        logger.info(f"{method.value}: accepted {len(items)} items")
        return ExtractionResult(header=parse.header, items=items, confidence=parse.confidence, method=method)

    def _image_tiers(self, data: bytes, filename: str, mime_type: str) -> List[Tuple[ParsingMethod, Callable[[], BackendParse]]]:
        tiers: List[Tuple[ParsingMethod, Callable[[], BackendParse]]] = []
        if self.backends.invoice is not None:
            invoice = self.backends.invoice
            tiers.append((ParsingMethod.INVOICE, lambda: invoice.parse_invoice(data, filename)))
        if self.backends.vision is not None:
            vision = self.backends.vision
            tiers.append((ParsingMethod.VISION, lambda: vision.extract_from_image(data, mime_type)))
        return tiers

    def _regex(self, text: str, method: ParsingMethod, confidence: float) -> ExtractionResult:
        parsed = parse_bill_text(text)
        items = sanitize_items(parsed.items, parsed.header.net_total)
        logger.info(f"{method.value}: {len(items)} items after sanitizing")
        return ExtractionResult(header=parsed.header, items=items, confidence=confidence, method=method)

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------
    def extract(self, data: Optional[bytes], filename: str = "", mime_type: str = "") -> ExtractionResult:
        """Extract header and items from an upload (or the demo transcript).

        Raises:
            OcrFailedError: OCR could not read the upload
            NotMedicalBillError: OCR text is not a medical bill
        """
        if not data:
            logger.info("No upload supplied, using demo transcript")
            return self._regex(self.demo_text, ParsingMethod.DEMO, DEMO_CONFIDENCE)

        for method, call in self._image_tiers(data, filename, mime_type):
            logger.info(f"Trying {method.value}")
            parse = self._call_with_timeout(method.value, call)
            if method == ParsingMethod.VISION and parse is not None and parse.is_medical_bill is False:
                logger.info("Vision model flagged the document as not a medical bill")
            result = self._accept(method, parse)
            if result is not None:
                return result

        if self.backends.ocr is None:
            raise OcrFailedError("No OCR backend is configured.")

        ocr_backend = self.backends.ocr
        logger.info("Running OCR")
        ocr = self._call_with_timeout("ocr", lambda: ocr_backend.recognize(data, filename))
        if ocr is None or not ocr.success:
            logger.warning(f"OCR failed: {ocr.error if ocr else 'timeout or error'}")
            raise OcrFailedError()

        validation = validate_medical_bill(ocr.text)
        if not validation.is_medical_bill:
            raise NotMedicalBillError(validation.reason, validation.confidence)

        if self.backends.text is not None:
            text_backend = self.backends.text
            logger.info(f"Trying {ParsingMethod.TEXT.value}")
            parse = self._call_with_timeout(
                ParsingMethod.TEXT.value, lambda: text_backend.extract_from_text(ocr.text)
            )
            result = self._accept(ParsingMethod.TEXT, parse)
            if result is not None:
                return result

        return self._regex(ocr.text, ParsingMethod.REGEX, ocr.confidence)


# =============================================================================
# Factory
# =============================================================================
def load_demo_text() -> str:
    try:
        return config.DEMO_OCR_FILE.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Demo transcript unavailable: {e}")
        return ""


def build_backends() -> ExtractionBackends:
    """Construct the backends enabled by the environment."""
    backends = ExtractionBackends()

    if config.MINDEE_API_KEY:
        backends.invoice = MindeeInvoiceClient(config.MINDEE_API_KEY)

    runtime = (config.LLM_RUNTIME or "gemini").lower()
    if runtime == "ollama" or (runtime == "gemini" and config.GEMINI_API_KEY):
        llm = LLMBillExtractor(runtime=runtime)
        backends.vision = llm
        backends.text = llm

    if config.OCR_BACKEND.lower() == "paddle":
        backends.ocr = PaddleOcrEngine()
    else:
        backends.ocr = OcrSpaceClient()

    logger.info(
        "Extraction backends: invoice=%s, llm=%s, ocr=%s",
        backends.invoice is not None,
        backends.vision is not None,
        type(backends.ocr).__name__,
    )
    return backends


def build_orchestrator() -> ExtractionOrchestrator:
    return ExtractionOrchestrator(build_backends(), demo_text=load_demo_text())
