"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from shared.config.settings import settings
from rest_api.core.cors import configure_cors
from rest_api.core.errors import database_error_handler
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.floor import orders_router, sessions_router, tables_router
from rest_api.routers.public import health_router


def create_app() -> FastAPI:
    """Build the application: middlewares, CORS and routers."""
    app = FastAPI(
        title="Tableside REST API",
        description="Table sessions, wave ordering and table close for restaurant floor staff",
        version="0.1.0",
        lifespan=lifespan,
    )

    register_middlewares(app)
    configure_cors(app)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(health_router)
    app.include_router(tables_router)
    app.include_router(sessions_router)
    app.include_router(orders_router)
    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.debug,
    )
