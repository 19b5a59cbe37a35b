"""Health check and monitoring endpoints"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdash.db import get_db
from taskdash.db.session import get_pool_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/pool")
async def get_pool_health():
    """
    Connection pool usage of the application engine.

    Engines without a queue pool (SQLite by default) report
    status "not_pooled" and no counters.
    """
    stats = get_pool_stats()
    if not stats["pooled"]:
        return {"status": "not_pooled", **stats}

    utilization = stats["utilization_percent"]
    if utilization >= 90:
        status = "critical"
    elif utilization >= 80:
        status = "warning"
    else:
        status = "healthy"

    return {"status": status, **stats}


@router.get("/")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness plus a round trip to the database"""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": "taskdash", "database": "unreachable"},
        )

    return {
        "status": "healthy",
        "service": "taskdash",
        "database": db.get_bind().dialect.name,
    }
