"""Health check API routes.

Provides endpoints for:
- GET /health - Basic liveness check
- GET /health/ready - Readiness check (DB connectivity)
"""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from qahub.db.engine import engine
from qahub.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def check_database() -> bool:
    """Run a trivial query against the configured database."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("database_health_check_failed", error=str(e))
        return False


@router.get("")
async def health() -> dict:
    """Basic liveness check. No authentication required."""
    return {"status": "ok"}


@router.get("/ready")
def ready() -> dict:
    """Readiness check.

    Raises:
        HTTPException 503: database unavailable
    """
    if not check_database():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready: database unavailable",
        )
    return {"status": "ok", "database": True}
