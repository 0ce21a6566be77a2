"""
Exception hierarchy shared by every layer of the direct query core.

Validation problems (:class:`QueryValidationError`) are converted into error
payloads by the query handler. Everything else propagates to the caller, which
decides how to surface it.
"""

from __future__ import annotations


class DirectQueryError(RuntimeError):
    """Root of all errors raised by the direct query core."""


class DataSourceNotFoundError(DirectQueryError):
    """Raised when a data source name does not resolve to stored metadata."""


class UnsupportedDataSourceTypeError(DirectQueryError):
    """Raised when no client constructor or query handler exists for a connector type."""


class DataSourceConfigurationError(DirectQueryError):
    """Raised when data source properties are missing or invalid."""


class DisallowedHostError(DataSourceConfigurationError):
    """Raised when a request targets a host on the configured deny list."""


class DataSourcesDisabledError(DirectQueryError):
    """Raised when the data source feature has been switched off in settings."""


class NetworkAccessDeniedError(DirectQueryError):
    """Raised when a network call is attempted without the network capability."""


class QueryValidationError(DirectQueryError, ValueError):
    """Raised when a request lacks the fields its query mode requires."""


class InvalidResourceRequestError(DirectQueryError, ValueError):
    """Raised when a resource lookup names an unknown type or omits a required name."""


class ProtocolClientError(DirectQueryError):
    """Raised when a protocol client cannot complete a call against its backend."""


class PrometheusClientError(ProtocolClientError):
    """Wire-level failure talking to Prometheus or Alertmanager."""


class PrometheusQueryError(PrometheusClientError):
    """Prometheus answered with ``"status": "error"``; the message is the backend's ``error`` field."""
