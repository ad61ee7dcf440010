"""
Rate limiting for the connect service.
"""

from .auth_limiter import AuthRateLimiter, RateLimitRecord

__all__ = ["AuthRateLimiter", "RateLimitRecord"]
