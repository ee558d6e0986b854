"""
CORS for the floor and kitchen UIs.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings

# Floor UI dev servers
DEV_ORIGINS = [f"http://{host}:{port}" for host in ("localhost", "127.0.0.1") for port in (5173, 3000)]


def get_cors_origins() -> list[str]:
    """ALLOWED_ORIGINS (comma-separated) when set, the dev servers otherwise."""
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    return origins or DEV_ORIGINS


def configure_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        # No preflight caching in development so origin edits apply at once
        max_age=0 if settings.environment == "development" else 600,
    )
