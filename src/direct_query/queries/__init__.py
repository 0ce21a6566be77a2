"""
Query handlers, their registry, and the request/response models they exchange.
"""

from .base import BaseQueryHandler, QueryHandler, QueryHandlerRegistry
from .models import (
    ExecuteDirectQueryRequest,
    ExecuteDirectQueryResponse,
    GetDirectQueryResourcesRequest,
    GetDirectQueryResourcesResponse,
    PrometheusOptions,
    PrometheusQueryType,
    ResourceType,
)
from .prometheus import PrometheusQueryHandler
from .validation import validate_request

__all__ = [
    "BaseQueryHandler",
    "QueryHandler",
    "QueryHandlerRegistry",
    "ExecuteDirectQueryRequest",
    "ExecuteDirectQueryResponse",
    "GetDirectQueryResourcesRequest",
    "GetDirectQueryResourcesResponse",
    "PrometheusOptions",
    "PrometheusQueryType",
    "ResourceType",
    "PrometheusQueryHandler",
    "validate_request",
]
