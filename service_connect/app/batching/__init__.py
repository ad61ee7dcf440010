"""
Request batching for the connect service.
"""

from .batcher import BatchGroup, RequestBatcher, default_group_key

__all__ = ["BatchGroup", "RequestBatcher", "default_group_key"]
