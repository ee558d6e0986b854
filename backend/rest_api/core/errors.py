"""
Exception handlers for errors that escape the domain services.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from shared.utils.exceptions import DatabaseError


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Storage failures the services did not turn into a result.
    The client gets a generic 500; the driver message only goes to the log.
    """
    error = DatabaseError(
        f"{request.method} {request.url.path}",
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})
