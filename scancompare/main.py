"""
ScanCompare - FastAPI Application

Longitudinal comparison of clinical imaging analyses.
Tracks how findings change between a before and an after scan
of the same body region.

IMPORTANT: This is NOT a diagnostic tool.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scancompare.config import settings
from scancompare.api.routes import router
from scancompare.api.middleware import (
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    setup_rate_limiting,
    setup_exception_handlers
)
from scancompare.services.scan_store import scan_store, seed_demo_data
from scancompare.utils.logger import get_logger, configure_logging

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "Starting ScanCompare",
        version=settings.app_version,
        debug=settings.debug
    )

    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    if settings.debug:
        seed_demo_data(scan_store)

    logger.info("Application ready")

    yield

    logger.info("Shutting down ScanCompare")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## ScanCompare - Longitudinal Scan Comparison

Compares two AI analyses of the same body region and reports how the
findings changed between them.

### ⚠️ Important Disclaimer

**This is NOT a diagnostic tool.** Findings come from automated image
analysis and all narrative text is templated. Every comparison must be
reviewed by a qualified healthcare professional.

### API Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/scans` | POST | Register a scan |
| `/scans/{id}/result` | PUT | Attach an analysis result |
| `/scans/{id}/comparable` | GET | List comparable scans |
| `/compare` | POST | Compare two stored scans |
| `/compare/results` | POST | Compare two inline results |
| `/compare/report` | POST | Render an HTML/text report |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup middleware (order matters - last added is outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_rate_limiting(app)
    setup_exception_handlers(app)

    app.include_router(router, tags=["API"])

    return app


app = create_app()


# Run with: uvicorn scancompare.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "scancompare.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
