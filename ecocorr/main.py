"""
main.py - Correlation engine HTTP service entry point

One correlator per process, created in the lifespan hook:
- cache sweep started on startup and stopped on shutdown
- provider sessions closed on shutdown

Run:
    python -m ecocorr.main
    # Swagger: http://localhost:8000/docs
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ecocorr.analysis.analysis_router import router as analysis_router
from ecocorr.analysis.correlator import EcosystemCorrelator, create_correlator
from ecocorr.config import get_settings
from ecocorr.utils.context_logger import get_context_logger, setup_context_logging

logger = logging.getLogger(__name__)


def create_app(correlator: Optional[EcosystemCorrelator] = None) -> FastAPI:
    """Build the FastAPI app; a prepared correlator may be injected (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        instance = correlator or create_correlator()
        app.state.correlator = instance
        await instance.cache.start()
        logger.info("Correlation service started")
        try:
            yield
        finally:
            await instance.cache.stop()
            await instance.close()
            app.state.correlator = None
            logger.info("Correlation service stopped")

    app = FastAPI(
        title="Ecosystem Correlation API",
        description="Correlation, lead/lag and capital-flow analysis across crypto ecosystems.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(analysis_router)
    return app


def main() -> None:
    settings = get_settings()
    setup_context_logging(settings.LOG_LEVEL)
    get_context_logger(__name__).info("Starting correlation API on %s:%s", settings.API_HOST, settings.API_PORT)
    uvicorn.run(
        create_app(),
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
