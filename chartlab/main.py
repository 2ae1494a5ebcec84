"""
ChartLab Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chartlab.core.config import settings
from chartlab.api.v1 import router as api_v1_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Market session: {settings.market_open}-{settings.market_close} {settings.market_timezone}")

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ChartLab Trading Dashboard API

    ## Services
    - **Indicators**: Technical indicator series and latest-bar snapshots (NumPy)
    - **Patterns**: Point relationships ("1>2", "2<3") matched on swing points,
      intraday blocks and user-selected points; classic chart patterns
    - **Signals**: Latest-bar detectors and indicator crossings
    - **Backtest**: Strategy replay with performance metrics
    - **Options**: Option chain ATM, put-call ratio and max pain

    All market data is supplied by the caller.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "ChartLab Backend API",
        "docs": "/docs",
        "health": "/health",
    }
