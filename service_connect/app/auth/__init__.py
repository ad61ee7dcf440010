"""
Authentication helpers for the connect service.
"""

from .tokens import (
    create_authenticated_headers,
    get_token_from_env,
    normalize_token,
    require_auth,
    resolve_auth,
)

__all__ = [
    "create_authenticated_headers",
    "get_token_from_env",
    "normalize_token",
    "require_auth",
    "resolve_auth",
]
