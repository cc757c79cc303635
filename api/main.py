"""
Deliverable Ledger API - Main Application.

FastAPI application exposing replace/unreplace, drift checks and the stock cache.
"""

import logging
import os

from fastapi import FastAPI

from api import __version__

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Deliverable Ledger API",
    description="Consume, restore and reconcile per-variant deliverable stock",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "deliverable-ledger-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Deliverable Ledger API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import deliverables, stock

app.include_router(stock.router, prefix="/api/v1", tags=["Stock"])
app.include_router(deliverables.router, prefix="/api/v1", tags=["Deliverables"])
