"""
Adapters package for the connect service.

Contains the HTTP dispatch capability for the upstream REST API. Adapters
stay thin: the resilience layer never owns the HTTP client, it is handed
one per call.
"""

from .http_dispatcher import HttpDispatcher

__all__ = ["HttpDispatcher"]
