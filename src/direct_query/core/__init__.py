"""
Core infrastructure modules shared across the direct query packages.

Exposes the data source catalogue, execution context, network capability and
logging helpers used by adapters, query handlers and services.
"""

from .context import ExecutionContext, NetworkAccess
from .logging import bind_extra, bind_tags, configure_logging, get_logger
from .registry import CatalogLoadError, DataSourceMetadata, DataSourceService, DataSourceType

__all__ = [
    "ExecutionContext",
    "NetworkAccess",
    "CatalogLoadError",
    "DataSourceMetadata",
    "DataSourceService",
    "DataSourceType",
    "get_logger",
    "configure_logging",
    "bind_extra",
    "bind_tags",
]
