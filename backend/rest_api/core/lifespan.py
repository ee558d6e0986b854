"""
Startup and shutdown of the REST API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.config.logging import rest_api_logger as logger
from shared.config.logging import setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine
from rest_api.models import Base


def check_configuration() -> None:
    """
    Log every configuration problem. In production any problem stops the
    server; elsewhere the defaults are tolerated.
    """
    problems = settings.validate_production_secrets()
    for problem in problems:
        logger.error("Configuration error", error=problem)
    if problems and settings.environment == "production":
        raise RuntimeError("Refusing to start: " + "; ".join(problems))


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    check_configuration()

    Base.metadata.create_all(bind=engine)
    logger.info(
        "REST API ready",
        port=settings.rest_api_port,
        env=settings.environment,
        balance_tolerance=settings.payment_balance_tolerance,
    )

    yield

    engine.dispose()
    logger.info("REST API stopped")
