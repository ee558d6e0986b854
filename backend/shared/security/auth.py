"""
Staff authentication.

Floor and kitchen staff carry HS256 JWTs whose claims name the locations they
work and their roles. This module turns a bearer token into the user context
the domain services consume:

    {"user_id": "server-1", "location_ids": ["<uuid>", ...], "roles": ["SERVER"]}

Whether that user may act on a given location is decided by the domain access
guard, not here.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from fastapi import Header, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from shared.config.constants import Roles
from shared.config.logging import get_logger
from shared.config.settings import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET, settings

logger = get_logger(__name__)

ALGORITHM = "HS256"


class StaffClaims(BaseModel):
    """Application claims of a staff token."""

    sub: str = Field(min_length=1)
    location_ids: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)

    def to_context(self) -> dict[str, Any]:
        # Unknown role names are dropped rather than trusted
        return {
            "user_id": self.sub,
            "location_ids": [str(lid) for lid in self.location_ids],
            "roles": [role for role in self.roles if role in Roles.ALL],
        }


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def sign_jwt(payload: dict[str, Any], ttl_seconds: int | None = None) -> str:
    """
    Sign a token carrying `payload` plus issuer, audience, issue/expiry
    times and a unique jti. Lifetime defaults to the access-token setting.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60
    issued_at = int(time.time())
    claims = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=ALGORITHM)


def sign_staff_token(
    user_id: str,
    location_ids: list[Any],
    roles: list[str],
    ttl_seconds: int | None = None,
) -> str:
    """Access token for a staff member working the given locations."""
    claims = StaffClaims(sub=str(user_id), location_ids=[str(lid) for lid in location_ids], roles=roles)
    return sign_jwt(claims.model_dump(), ttl_seconds=ttl_seconds)


def verify_jwt(token: str) -> StaffClaims:
    """
    Decode and check a staff token.

    Raises:
        HTTPException(401): expired, badly signed, wrong issuer/audience, or
            missing/malformed staff claims.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        # The reason is logged, the client only learns the token is invalid
        logger.warning("JWT validation failed", error=str(e))
        raise _unauthorized("Invalid token")

    try:
        return StaffClaims.model_validate(payload)
    except ValidationError as e:
        logger.warning("JWT claims rejected", errors=e.error_count())
        raise _unauthorized("Invalid token: malformed staff claims")


def get_bearer_token(authorization: str | None) -> str:
    """Token part of an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise _unauthorized("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise _unauthorized("Invalid Authorization header format. Expected: Bearer <token>")
    return token.strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency: the caller's user context.

    Usage:
        @router.put("/{table_number}/order")
        def sync_table_order(ctx: dict[str, Any] = Depends(current_user_context)):
            ...
    """
    return verify_jwt(get_bearer_token(authorization)).to_context()


def require_roles(ctx: dict[str, Any], allowed: list[str] | frozenset[str]) -> None:
    """
    Refuse with 403 unless the caller holds at least one allowed role.
    """
    if not set(ctx.get("roles", [])) & set(allowed):
        logger.warning("Role check failed", user_id=ctx.get("user_id"), roles=ctx.get("roles"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required role: one of {sorted(allowed)}",
        )
