"""
Alertmanager ``/api/v2`` client.

Alertmanager answers with plain JSON documents rather than the Prometheus
envelope, so only the HTTP status and body decoding are checked.
"""

from __future__ import annotations

from logging import LoggerAdapter
from typing import Any, Dict, List, Optional

import httpx

from ...errors import PrometheusClientError
from .base import BaseAPIClient, QueryParams, expect_list


class AlertManagerClient(BaseAPIClient):
    """Read-only access to alerts, alert groups, receivers and silences."""

    backend_name = "Alertmanager"
    error_class = PrometheusClientError

    def __init__(self, http_client: httpx.Client, uri: str, *, logger: Optional[LoggerAdapter] = None) -> None:
        super().__init__(base_url=uri, http_client=http_client, logger=logger)

    def get_alerts(self, query_params: Optional[QueryParams] = None) -> List[Dict[str, Any]]:
        return self._get_list("/api/v2/alerts", "Alertmanager alerts", query_params)

    def get_alert_groups(self, query_params: Optional[QueryParams] = None) -> List[Dict[str, Any]]:
        return self._get_list("/api/v2/alerts/groups", "Alertmanager alert groups", query_params)

    def get_receivers(self) -> List[Dict[str, Any]]:
        return self._get_list("/api/v2/receivers", "Alertmanager receivers", None)

    def get_silences(self, query_params: Optional[QueryParams] = None) -> List[Dict[str, Any]]:
        return self._get_list("/api/v2/silences", "Alertmanager silences", query_params)

    def _get_list(self, path: str, context: str, params: Optional[QueryParams]) -> List[Dict[str, Any]]:
        payload = self._get_json(path, params=params)
        return list(expect_list(payload, context=context, error_class=PrometheusClientError))
