"""
Direct query core for Prometheus data sources.

The package resolves a named data source into an authenticated protocol client,
dispatches it to the matching query handler, and runs passthrough PromQL
queries or resource lookups. Embedding hosts start from
:class:`direct_query.services.DirectQueryExecutorService`; operators use the
``direct-query`` command line interface.
"""

from .adapters import DataSourceClientFactory
from .adapters.api import AlertManagerClient, PrometheusClient
from .config import DirectQuerySettings, load_settings
from .core import DataSourceMetadata, DataSourceService, DataSourceType, ExecutionContext, NetworkAccess
from .queries import ExecuteDirectQueryRequest, GetDirectQueryResourcesRequest, PrometheusQueryHandler, QueryHandlerRegistry
from .services import DirectQueryExecutorService

__all__ = [
    "AlertManagerClient",
    "DataSourceClientFactory",
    "DataSourceMetadata",
    "DataSourceService",
    "DataSourceType",
    "DirectQueryExecutorService",
    "DirectQuerySettings",
    "ExecuteDirectQueryRequest",
    "ExecutionContext",
    "GetDirectQueryResourcesRequest",
    "NetworkAccess",
    "PrometheusClient",
    "PrometheusQueryHandler",
    "QueryHandlerRegistry",
    "load_settings",
]
