"""
FastAPI application entry point for the Sales CRM reporting API.

Configures logging and CORS, opens the database pool for the lifetime of the
app, and registers the report, customer and user routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salescrm import __version__
from salescrm.api import api_router
from salescrm.core.config import get_settings
from salescrm.core.database import init_db, close_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def _cors_origins():
    try:
        return get_settings().cors_origins
    except Exception as e:
        logger.error(f"Failed to load settings for CORS, using defaults: {e}")
        return DEFAULT_CORS_ORIGINS


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    On startup open the database pool; on shutdown close it.

    A failed pool init is logged and startup continues; requests that need
    the database then fail with 500.
    """
    logger.info("Sales CRM reporting API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Sales CRM reporting API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="Sales CRM Reporting API",
    version=__version__,
    description=(
        "Role-scoped reporting over the sales team's customer leads: "
        "single-dimension analysis, summary tables, overview counters."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check for monitoring and load balancer probes."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "Sales CRM Reporting API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "salescrm.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
