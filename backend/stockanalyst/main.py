"""
Stock Analyst Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockanalyst.core.config import settings
from stockanalyst.core.market_hours import describe_trading_period
from stockanalyst.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Primary AI provider: {settings.primary_ai_provider}")

    missing = settings.missing_credentials()
    if missing:
        logger.warning(f"Missing or placeholder credentials: {', '.join(missing)}")

    # Initialize SQLite database
    from stockanalyst.db.database import init_db, close_db
    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Stock Analyst API

    ## Architecture
    - **Session Cache**: One analysis per symbol per trading / non-trading window (US/Eastern)
    - **Historical Data**: Weekly, daily and 30-minute bars with indicators from the data provider
    - **Trend Layer**: LLM multi-timeframe trend analysis
    - **Support & Resistance**: Level API plus LLM narrative, with fallback text
    - **Strategy Layer**: LLM short-term strategies, with fallback text

    ## Core Principles
    - Indicators and levels come from providers, the LLM only writes
    - A failing optional stage degrades the report instead of failing it
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - allow the Vite dev server
cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.frontend_url and settings.frontend_url not in cors_origins:
    cors_origins.append(settings.frontend_url)
# Add any additional origins from settings
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
@app.get("/api/v1/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "trading_period": describe_trading_period(),
        "missing_credentials": settings.missing_credentials(),
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Stock Analyst Backend API",
        "docs": "/docs",
        "health": "/health",
    }
