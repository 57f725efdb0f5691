"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.engine import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness: the process is serving requests."""
    return HealthResponse(status="healthy", version="0.1.0")


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness: the database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Readiness check failed: database unavailable", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}
