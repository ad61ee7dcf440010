"""
In-memory caches for upstream responses and validated tokens.
"""

from .response_cache import CacheEntry, ResponseCache
from .token_cache import SecureTokenCache, token_digest

__all__ = ["CacheEntry", "ResponseCache", "SecureTokenCache", "token_digest"]
