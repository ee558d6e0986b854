"""
Health check endpoint for the REST API.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.logging import rest_api_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.utils.schemas import HealthResponse


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """
    Service status plus a database round trip.
    Returns 503 with status=degraded when the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        body = HealthResponse(status="degraded", service="rest-api", database=False)
        return JSONResponse(content=body.model_dump(), status_code=503)

    logger.debug("Health check ok", environment=settings.environment)
    return HealthResponse(status="ok", service="rest-api", database=True)
