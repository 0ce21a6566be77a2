"""
HTTP protocol clients for remote monitoring backends.

* :class:`BaseAPIClient` wraps single-attempt HTTP calls and status/body checks.
* :class:`PrometheusClient` implements the Prometheus ``/api/v1`` surface.
* :class:`AlertManagerClient` implements the Alertmanager ``/api/v2`` surface.
"""

from .alertmanager import AlertManagerClient
from .base import BaseAPIClient
from .prometheus import METRIC_NAME_LABEL, MetricMetadata, PrometheusClient

__all__ = [
    "AlertManagerClient",
    "BaseAPIClient",
    "METRIC_NAME_LABEL",
    "MetricMetadata",
    "PrometheusClient",
]
