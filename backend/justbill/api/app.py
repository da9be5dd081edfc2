"""
FastAPI Application for JustBill.

Usage:
    uvicorn justbill.api.app:app --app-dir backend --reload --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from justbill import __version__
from justbill.api.routes import router
from justbill.catalog import load_catalog
from justbill.config import CORS_ORIGINS
from justbill.exceptions import CatalogUnavailableError
from justbill.extraction.orchestrator import ExtractionOrchestrator, build_orchestrator
from justbill.services.analysis import BillAnalysisService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

def create_app(orchestrator: Optional[ExtractionOrchestrator] = None) -> FastAPI:
    """Build the application; ``orchestrator`` overrides the env-configured one."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting JustBill API...")
        app.state.catalog = None
        app.state.analysis_service = None

        try:
            catalog = load_catalog()
            app.state.catalog = catalog
            app.state.analysis_service = BillAnalysisService(
                catalog, orchestrator or build_orchestrator()
            )
            logger.info("✅ Reference catalog and extraction backends ready")
        except CatalogUnavailableError as e:
            logger.error(f"❌ Failed to load reference catalog: {e}")
            logger.warning("API will start but analysis will fail until the catalog is available")

        yield

        logger.info("Shutting down JustBill API...")

    app = FastAPI(
        title="JustBill API",
        description="Checks hospital bills against government ceiling prices (NPPA / CGHS)",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
