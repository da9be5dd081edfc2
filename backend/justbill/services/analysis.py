"""
Bill analysis service layer.

Runs one bill through the whole pipeline: extraction cascade, price
matching against the catalog entries that apply in the chosen state,
overcharge classification and the summary. Used by both the HTTP API
and the command-line entry point.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from justbill.catalog import ReferenceCatalog
from justbill.extraction.orchestrator import ExtractionOrchestrator
from justbill.models import AnalysisResult, BillSummary
from justbill.verifier.classifier import summarize
from justbill.verifier.price_matcher import PriceMatcher

logger = logging.getLogger(__name__)

DEFAULT_STATE_ID = 1


class BillAnalysisService:
    """Analyzes bills against a loaded reference catalog."""

    def __init__(self, catalog: ReferenceCatalog, orchestrator: ExtractionOrchestrator):
        self.catalog = catalog
        self.orchestrator = orchestrator

    def analyze(
        self,
        data: Optional[bytes] = None,
        filename: str = "",
        mime_type: str = "",
        state_id: int = DEFAULT_STATE_ID,
    ) -> AnalysisResult:
        """Analyze one bill. ``data=None`` runs the demo transcript.

        Raises:
            OcrFailedError, NotMedicalBillError: from the extraction cascade
        """
        state = self.catalog.state_by_id(state_id)
        logger.info(
            f"Analyzing bill: file={filename or '<demo>'}, "
            f"state={state.code if state else state_id}"
        )

        extraction = self.orchestrator.extract(data, filename, mime_type)

        entries = self.catalog.entries_for_state(state.code if state else None)
        results = PriceMatcher(entries).compare(extraction.items)

        header = extraction.header
        summary = BillSummary(
            **summarize(results).model_dump(),
            discount=header.discount,
            cgst=header.cgst,
            sgst=header.sgst,
        )

        logger.info(
            f"Analysis complete via {extraction.method.value}: {summary.item_count} items, "
            f"overcharge ₹{summary.total_overcharge:.2f} ({summary.savings_percent:.1f}%)"
        )

        return AnalysisResult(
            id=uuid.uuid4().hex,
            hospital_name=header.hospital_name,
            bill_date=header.bill_date,
            bill_number=header.bill_number,
            state=state,
            summary=summary,
            items=results,
            ocr_confidence=extraction.confidence,
            parsing_method=extraction.method,
        )
