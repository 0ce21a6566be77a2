"""
Service-layer helpers orchestrating clients, handlers, and execution context.
"""

from .direct_query import DirectQueryExecutorService

__all__ = ["DirectQueryExecutorService"]
