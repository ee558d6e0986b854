"""
HTTP middlewares for the floor API: request ids, response hardening and a
JSON-only request body rule.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware

# API responses are data, never pages to render or frame
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}
HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = HSTS
        return response


class JsonBodyMiddleware(BaseHTTPMiddleware):
    """
    Refuse request bodies declared as anything but JSON with 415. Requests
    without a Content-Type (seat/fire/void calls with no body) pass through.
    """

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type")
        if (
            request.method in ("POST", "PUT", "PATCH")
            and content_type
            and not content_type.startswith("application/json")
        ):
            return JSONResponse(
                status_code=415,
                content={"detail": "Unsupported Media Type. Use application/json"},
            )
        return await call_next(request)


def register_middlewares(app: FastAPI) -> None:
    """
    Middlewares run in reverse order of registration: the request id is
    assigned first so every later log line carries one.
    """
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(JsonBodyMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
