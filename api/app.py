"""
FastAPI application for the Rank Signal Engine.

Mounts the signal router and configures logging to stdout.
"""

import logging
import sys

from fastapi import FastAPI

from api.signals import router as signals_router
from src.utils.config import get_settings

settings = get_settings()

# Configure logging to stdout
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title=settings.API_TITLE,
    description="Opportunity scoring, competitor pressure and backlink gap signals",
    version="1.0.0",
)

app.include_router(signals_router)


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok", "environment": settings.ENVIRONMENT}
