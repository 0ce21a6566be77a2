"""
Protocol clients for external monitoring backends and the machinery that builds them.

Concrete clients live in :mod:`direct_query.adapters.api`. The transport
builder and the client factory turn a data source's stored properties into an
authenticated client.
"""

from .base import DataSourceClient, VerificationResult
from .factory import DataSourceClientFactory
from .transport import build_http_client

__all__ = [
    "DataSourceClient",
    "DataSourceClientFactory",
    "VerificationResult",
    "build_http_client",
]
