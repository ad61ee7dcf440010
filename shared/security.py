"""
Token masking and token security validation.

Pure functions with no shared state. The logging layer calls
``mask_sensitive_data`` before emitting any string that may carry a bearer
value or a long opaque token.
"""

import re
from dataclasses import dataclass, field
from typing import List


EMPTY_MARKER = "[EMPTY]"
REDACTED_MARKER = "[REDACTED]"

MIN_TOKEN_LENGTH = 20
MIN_UNIQUE_CHARS = 10

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)
_INSECURE_PATTERNS = [
    re.compile(r"^(test|demo|example|sample)", re.IGNORECASE),
    re.compile(r"^(admin|user|default)", re.IGNORECASE),
    re.compile(r"^(123|abc|password)", re.IGNORECASE),
]
_BEARER_IN_TEXT = re.compile(r"Bearer\s+[A-Za-z0-9+/=]{20,}")
_RAW_TOKEN_IN_TEXT = re.compile(r"[A-Za-z0-9+/=]{32,}")


@dataclass
class TokenValidationResult:
    """Outcome of a token security check."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def strip_bearer(token: str) -> str:
    """Remove a leading ``Bearer`` scheme and surrounding whitespace."""
    return _BEARER_PREFIX.sub("", token.strip()).strip()


def validate_token_security(token: str) -> TokenValidationResult:
    """Check token length, common test prefixes and character diversity.

    Only the length check makes a token invalid; the others are warnings.
    """
    result = TokenValidationResult()
    clean_token = strip_bearer(token or "")

    if len(clean_token) < MIN_TOKEN_LENGTH:
        result.errors.append("Token appears too short to be secure")
        result.is_valid = False

    if any(pattern.match(clean_token) for pattern in _INSECURE_PATTERNS):
        result.warnings.append("Token appears to use a common test pattern")

    if len(set(clean_token.lower())) < MIN_UNIQUE_CHARS:
        result.warnings.append("Token has low character diversity")

    return result


def mask_token(token: str) -> str:
    """Mask a token for logging, keeping the first and last four characters."""
    if not token:
        return EMPTY_MARKER

    clean_token = strip_bearer(token)
    if len(clean_token) <= 8:
        return REDACTED_MARKER

    hidden = "*" * min(12, len(clean_token) - 8)
    return f"{clean_token[:4]}{hidden}{clean_token[-4:]}"


def mask_sensitive_data(message: str) -> str:
    """Mask bearer values and long token-shaped substrings in free text."""
    masked = _BEARER_IN_TEXT.sub(lambda match: mask_token(match.group(0)), message)
    return _RAW_TOKEN_IN_TEXT.sub(lambda match: mask_token(match.group(0)), masked)
