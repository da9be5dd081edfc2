"""
FastAPI Route Definitions for the JustBill API.

This module defines all HTTP endpoints for the API:
- POST /api/analyze: Analyze an uploaded bill (or the demo bill when no file is sent)
- GET /api/states: States/UTs with their CGHS city tier
- GET /api/categories: Item categories with GST rates
- GET /api/reference-info: Reference price sources and their freshness
- GET /health: Liveness and catalog size

Separation of Concerns:
- This file: API layer (HTTP request/response handling)
- justbill/services/analysis.py: Service layer (pipeline)
- backend/main.py: CLI layer (command-line interface)
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from justbill.catalog import ReferenceCatalog
from justbill.config import ALLOWED_MIME_TYPES, MAX_UPLOAD_BYTES
from justbill.exceptions import BillAnalysisError
from justbill.models import AnalysisResult, CategoryInfo, StateInfo
from justbill.services.analysis import DEFAULT_STATE_ID, BillAnalysisService

logger = logging.getLogger(__name__)

# ============================================================================
# Router Configuration
# ============================================================================
router = APIRouter(
    tags=["Bill Analysis"],
    responses={
        500: {"description": "Internal server error"},
        400: {"description": "Bad request"}
    }
)


# ============================================================================
# Response Models
# ============================================================================
class SourceInfo(BaseModel):
    source: str = Field(..., description="Publishing authority, e.g. NPPA or CGHS")
    item_count: int = Field(..., description="Number of reference prices from this source")
    latest_date: Optional[str] = Field(None, description="Most recent publication date (YYYY-MM-DD)")


class ReferenceInfoResponse(BaseModel):
    sources: List[SourceInfo]
    total_items: int


class HealthResponse(BaseModel):
    status: str
    catalog_items: int


# ============================================================================
# Helpers
# ============================================================================
def _http_error(status_code: int, code: str, message: str) -> None:
    raise HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _get_catalog(request: Request) -> ReferenceCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        _http_error(503, "catalog_unavailable", "Reference price catalog is not loaded")
    return catalog


def _get_service(request: Request) -> BillAnalysisService:
    service = getattr(request.app.state, "analysis_service", None)
    if service is None:
        _http_error(503, "catalog_unavailable", "Analysis service is not ready")
    return service


# ============================================================================
# POST /api/analyze - Analyze a Bill
# ============================================================================
@router.post("/api/analyze", response_model=AnalysisResult, status_code=200)
def analyze_bill(
    request: Request,
    bill_image: Optional[UploadFile] = File(None, alias="billImage", description="Bill photo/scan or PDF"),
    state_id: int = Form(DEFAULT_STATE_ID, alias="stateId", description="1-based state id from /api/states"),
):
    """
    Analyze a hospital bill against government ceiling prices.

    Without a file the built-in demo bill is analyzed.

    Raises:
        HTTPException 400: not_medical_bill / ocr_failed / invalid_state
        HTTPException 413: file larger than the upload limit
        HTTPException 415: unsupported file type
    """
    service = _get_service(request)

    if service.catalog.state_by_id(state_id) is None:
        _http_error(400, "invalid_state", f"Unknown state id: {state_id}")

    data: Optional[bytes] = None
    filename = ""
    mime_type = ""
    if bill_image is not None and bill_image.filename:
        mime_type = (bill_image.content_type or "").lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            _http_error(415, "unsupported_file_type", "Only JPEG, PNG, GIF, WebP and PDF files are allowed")

        data = bill_image.file.read(MAX_UPLOAD_BYTES + 1)
        if len(data) > MAX_UPLOAD_BYTES:
            _http_error(413, "file_too_large", f"File exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit")
        if not data:
            _http_error(400, "empty_file", "Uploaded file is empty")
        filename = bill_image.filename

    try:
        return service.analyze(data, filename=filename, mime_type=mime_type, state_id=state_id)

    except BillAnalysisError as e:
        logger.info(f"Analysis rejected ({e.code}): {e.message}")
        raise HTTPException(status_code=400, detail=e.to_detail())

    except HTTPException:
        raise

    except Exception as e:
        logger.error(f"Failed to analyze bill: {e}", exc_info=True)
        _http_error(500, "analysis_failed", "Failed to analyze bill")


# ============================================================================
# Reference data
# ============================================================================
@router.get("/api/states", response_model=List[StateInfo])
def list_states(request: Request):
    return _get_catalog(request).states()


@router.get("/api/categories", response_model=List[CategoryInfo])
def list_categories(request: Request):
    return _get_catalog(request).categories()


@router.get("/api/reference-info", response_model=ReferenceInfoResponse)
def reference_info(request: Request):
    return _get_catalog(request).reference_info()


@router.get("/health", response_model=HealthResponse)
def health(request: Request):
    catalog = getattr(request.app.state, "catalog", None)
    return HealthResponse(
        status="ok" if catalog is not None else "degraded",
        catalog_items=len(catalog) if catalog is not None else 0,
    )
