"""
Query handler serving Prometheus data sources.

Request problems (missing or malformed time fields, unknown query mode) and
query errors reported by Prometheus itself come back as ``{"error": ...}``
payloads. Wire failures (unreachable backend, non-2xx status, undecodable body)
are raised as :class:`~direct_query.errors.PrometheusClientError` with the
query or resource that failed in the message.
"""

from __future__ import annotations

import math
from functools import partial
from logging import LoggerAdapter
from typing import Any, Callable, Dict, Optional

from ..adapters.api import AlertManagerClient, PrometheusClient
from ..core.context import NetworkAccess
from ..core.logging import bind_extra, get_logger
from ..core.registry import DataSourceType
from ..errors import InvalidResourceRequestError, PrometheusClientError, PrometheusQueryError, QueryValidationError
from .base import BaseQueryHandler
from .models import ExecuteDirectQueryRequest, GetDirectQueryResourcesRequest, PrometheusQueryType, ResourceType

START_END_REQUIRED = "Start and end times are required for Prometheus queries"
TIME_REQUIRED = "Time is required for instant Prometheus queries"
QUERY_TYPE_REQUIRED = "Query type is required for Prometheus queries (expected 'instant' or 'range')"
QUERY_REQUIRED = "Query is required"


def parse_timestamp(value: str | int | float) -> int | float:
    """
    Parse an epoch-seconds timestamp.

    Integers are preferred so whole seconds are sent without a fractional part.
    """

    if isinstance(value, bool):
        raise QueryValidationError(f'For input string: "{value}"')
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        parsed = float(text)
    except ValueError:
        raise QueryValidationError(f'For input string: "{value}"') from None
    if not math.isfinite(parsed):
        raise QueryValidationError(f'For input string: "{value}"')
    return parsed


def _error_payload(message: str) -> Dict[str, Any]:
    return {"error": message}


class PrometheusQueryHandler(BaseQueryHandler):
    """
    Execute PromQL queries and resource lookups through a :class:`PrometheusClient`.

    Parameters
    ----------
    network:
        Capability under which every backend call runs.
    logger:
        Optional injected logger.
    """

    datasource_type = DataSourceType.PROMETHEUS

    def __init__(self, network: Optional[NetworkAccess] = None, *, logger: Optional[LoggerAdapter] = None) -> None:
        self.network = network or NetworkAccess()
        self.logger = logger or get_logger(f"{__name__}.{self.__class__.__name__}")

    def execute_query(self, client: PrometheusClient, request: ExecuteDirectQueryRequest) -> Dict[str, Any]:
        options = request.options
        query_type = options.query_type
        log = bind_extra(self.logger, datasource=request.datasource, query_type=query_type.value if query_type else None)

        if not request.query:
            return _error_payload(QUERY_REQUIRED)

        try:
            if query_type is PrometheusQueryType.RANGE:
                if options.start is None or options.end is None:
                    return _error_payload(START_END_REQUIRED)
                start = parse_timestamp(options.start)
                end = parse_timestamp(options.end)
                call: Callable[[], Dict[str, Any]] = partial(
                    client.query_range,
                    request.query,
                    start,
                    end,
                    options.step,
                    limit=request.max_results,
                    timeout_millis=request.timeout_millis,
                )
            elif query_type is PrometheusQueryType.INSTANT:
                if options.time is None:
                    return _error_payload(TIME_REQUIRED)
                time = parse_timestamp(options.time)
                call = partial(
                    client.query,
                    request.query,
                    time,
                    limit=request.max_results,
                    timeout_millis=request.timeout_millis,
                )
            else:
                return _error_payload(QUERY_TYPE_REQUIRED)
        except QueryValidationError as exc:
            return _error_payload(f"Invalid time format: {exc}")

        log.debug("Executing Prometheus query")
        try:
            return self.network.run(call)
        except PrometheusQueryError as exc:
            log.warning("Prometheus rejected query", extra={"error": str(exc)})
            return _error_payload(str(exc))
        except PrometheusClientError as exc:
            log.error("Prometheus query failed", extra={"error": str(exc)})
            raise exc.__class__(f"Error executing {query_type.value} query '{request.query}': {exc}") from exc

    def get_resources(self, client: PrometheusClient, request: GetDirectQueryResourcesRequest) -> Any:
        resource_type = ResourceType.parse(request.resource_type)
        params = dict(request.query_params or {})
        log = bind_extra(self.logger, datasource=request.datasource, resource_type=resource_type.value)

        if resource_type is ResourceType.LABEL_VALUES and not request.resource_name:
            raise InvalidResourceRequestError("Resource name is required for label values")
        alertmanager: Optional[AlertManagerClient] = None
        if resource_type.is_alertmanager:
            alertmanager = client.alertmanager
            if alertmanager is None:
                raise InvalidResourceRequestError(f"Alertmanager is not configured for data source '{request.datasource}'")

        fetchers: Dict[ResourceType, Callable[[], Any]] = {
            ResourceType.LABELS: lambda: client.get_labels(params),
            ResourceType.LABEL_VALUES: lambda: client.get_label_values(str(request.resource_name), params),
            ResourceType.METADATA: lambda: {name: [record.to_dict() for record in records] for name, records in client.get_all_metrics(params).items()},
            ResourceType.SERIES: lambda: client.get_series(params),
            ResourceType.ALERTMANAGER_ALERTS: lambda: alertmanager.get_alerts(params),
            ResourceType.ALERTMANAGER_ALERT_GROUPS: lambda: alertmanager.get_alert_groups(params),
            ResourceType.ALERTMANAGER_RECEIVERS: lambda: alertmanager.get_receivers(),
            ResourceType.ALERTMANAGER_SILENCES: lambda: alertmanager.get_silences(params),
        }

        log.debug("Fetching Prometheus resource", extra={"resource_name": request.resource_name})
        try:
            return self.network.run(fetchers[resource_type])
        except PrometheusClientError as exc:
            log.error("Prometheus resource lookup failed", extra={"error": str(exc)})
            raise exc.__class__(f"Error fetching {resource_type.value} resource: {exc}") from exc
