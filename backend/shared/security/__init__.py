"""
Security module: staff authentication.
"""

from shared.security.auth import (
    sign_jwt,
    sign_staff_token,
    verify_jwt,
    get_bearer_token,
    current_user_context,
    require_roles,
)

__all__ = [
    "sign_jwt",
    "sign_staff_token",
    "verify_jwt",
    "get_bearer_token",
    "current_user_context",
    "require_roles",
]
