"""
FastAPI application entry point for the KMCC QC forecast API.

Configures logging, CORS and the warehouse client lifecycle, and registers
the prediction router used by the QC dashboard.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kmcc_qc import __version__
from kmcc_qc.api.predictions import router as predictions_router
from kmcc_qc.core.config import get_settings
from kmcc_qc.core.warehouse import close_warehouse, init_warehouse
from kmcc_qc.models import ErrorResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize the BigQuery warehouse client

    On shutdown:
        - Release the warehouse client
    """
    # Startup
    logger.info("KMCC QC forecast API starting")
    try:
        await init_warehouse()
        logger.info("Warehouse client initialized")
    except Exception as e:
        logger.error(f"Failed to initialize warehouse client: {e}")
        # Requests retry initialization through get_warehouse()

    yield

    # Shutdown
    logger.info("KMCC QC forecast API shutting down")
    try:
        await close_warehouse()
        logger.info("Warehouse client closed")
    except Exception as e:
        logger.error(f"Error closing warehouse client: {e}")


app = FastAPI(
    title="KMCC QC Forecast API",
    version=__version__,
    description=(
        "Month-end quality forecasts, risk levels and the manager watch list "
        "for the KMCC QC dashboard."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(predictions_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Return the dashboard's error envelope for failures outside the handlers.

    Covers dependency resolution (e.g. a warehouse client that cannot be
    built from BIGQUERY_CREDENTIALS), which runs before the handler's try.
    """
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """API name, version and documentation links."""
    return {
        "name": "KMCC QC Forecast API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kmcc_qc.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
