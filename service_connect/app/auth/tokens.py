"""
Bearer token resolution for upstream calls.

A token comes either from ``CENTERPOINT_API_TOKEN`` or from the
``Authorization`` argument of a tool call.
"""

import os
from typing import Dict, Optional

from shared.errors import AuthenticationError


TOKEN_ENV_VAR = "CENTERPOINT_API_TOKEN"

MISSING_TOKEN_MESSAGE = (
    "No API token found. Please either:\n"
    f"1. Set the {TOKEN_ENV_VAR} environment variable, or\n"
    '2. Provide the "Authorization" parameter in your API call\n\n'
    "Example usage:\n"
    f'- Environment: export {TOKEN_ENV_VAR}="your_token_here"\n'
    '- Parameter: { "Authorization": "your_token_here" }'
)


def get_token_from_env() -> Optional[str]:
    token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    return token or None


def normalize_token(token: str) -> str:
    """Return ``Bearer <token>``, fixing the casing of an existing scheme."""
    trimmed = token.strip()
    if trimmed.lower().startswith("bearer "):
        return f"Bearer {trimmed[7:]}"
    return f"Bearer {trimmed}"


def resolve_auth(arg_token: Optional[str] = None) -> Optional[str]:
    """Resolve a bearer token; the environment takes priority over the argument."""
    env_token = get_token_from_env()
    if env_token:
        return normalize_token(env_token)

    if arg_token and arg_token.strip():
        return normalize_token(arg_token)

    return None


def require_auth(arg_token: Optional[str] = None) -> str:
    token = resolve_auth(arg_token)
    if not token:
        raise AuthenticationError(MISSING_TOKEN_MESSAGE, details={"env_var": TOKEN_ENV_VAR})
    return token


def create_authenticated_headers(
    arg_token: Optional[str] = None,
    additional_headers: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Build request headers with ``Authorization``.

    An explicit argument token overrides the environment here, and
    ``additional_headers`` cannot replace the Authorization value.
    """
    if arg_token and arg_token.strip():
        token = normalize_token(arg_token)
    else:
        token = require_auth()

    return {**(additional_headers or {}), "Authorization": token}
