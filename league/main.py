"""
Main FastAPI application.

Serves the computed league tables to the website.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from league import __version__
from league.core.config import get_settings
from league.core.database import create_tables, get_engine
from league.api.v1 import rankings, scores

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Runs on startup and shutdown.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    logger.info("Starting Region League API")
    logger.info(f"Log level: {settings.log_level}")

    try:
        create_tables()
        logger.info("Database tables ready")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise

    yield

    logger.info("Shutting down")


app = FastAPI(
    title="Region League API",
    description="Regions ranked across human-development metrics",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rankings.router, prefix="/api/v1")
app.include_router(scores.router, prefix="/api/v1")


@app.get("/")
def root():
    """Root endpoint with service info."""
    return {
        "service": "Region League API",
        "version": __version__,
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint.

    Returns status of the service and database connectivity.
    """
    from sqlalchemy import text

    health_status = {
        "status": "healthy",
        "service": "running",
        "database": "unknown"
    }

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["database"] = f"error: {str(e)}"
        logger.warning(f"Database health check failed: {e}")

    return health_status
