"""
Prometheus HTTP API client.

Every endpoint answers with the same envelope::

    {"status": "success" | "error", "data": <payload>, "error": "<message>"}

:meth:`PrometheusClient._read_envelope` enforces it: ``data`` is returned on
success, the backend's ``error`` message is raised verbatim otherwise.

Reference: https://prometheus.io/docs/prometheus/latest/querying/api/
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import LoggerAdapter
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from ...core.registry import DataSourceType
from ...errors import PrometheusClientError, PrometheusQueryError, ProtocolClientError
from ..base import VerificationResult
from .alertmanager import AlertManagerClient
from .base import BaseAPIClient, QueryParams, expect_list

METRIC_NAME_LABEL = "__name__"

Timestamp = int | float | str


@dataclass(slots=True, frozen=True)
class MetricMetadata:
    """Metadata record returned by ``/api/v1/metadata``."""

    type: str
    help: str
    unit: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "MetricMetadata":
        return cls(
            type=str(payload.get("type") or ""),
            help=str(payload.get("help") or ""),
            unit=str(payload.get("unit") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "help": self.help, "unit": self.unit}


def _timeout_param(timeout_millis: Optional[int]) -> Optional[str]:
    if timeout_millis is None:
        return None
    return f"{int(timeout_millis)}ms"


class PrometheusClient(BaseAPIClient):
    """Client for the Prometheus ``/api/v1`` surface, optionally paired with Alertmanager."""

    backend_name = "Prometheus"
    error_class = PrometheusClientError

    def __init__(
        self,
        http_client: httpx.Client,
        uri: str,
        *,
        alertmanager: Optional[AlertManagerClient] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> None:
        super().__init__(base_url=uri, http_client=http_client, logger=logger)
        self.alertmanager = alertmanager

    @property
    def datasource_type(self) -> DataSourceType:
        return DataSourceType.PROMETHEUS

    def close(self) -> None:
        super().close()
        if self.alertmanager is not None:
            self.alertmanager.close()

    # -- Query endpoints ---------------------------------------------------

    def query(
        self,
        query: str,
        time: Optional[Timestamp] = None,
        limit: Optional[int] = None,
        timeout_millis: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Evaluate an instant query and return the envelope ``data`` unmodified."""

        params = {"query": query, "time": time, "limit": limit, "timeout": _timeout_param(timeout_millis)}
        data = self._get_envelope("/api/v1/query", params=params)
        if not isinstance(data, dict):
            raise PrometheusClientError("Unexpected payload for Prometheus instant query.")
        return data

    def query_range(
        self,
        query: str,
        start: Timestamp,
        end: Timestamp,
        step: Optional[str] = None,
        limit: Optional[int] = None,
        timeout_millis: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Evaluate a range query and return the envelope ``data`` unmodified."""

        params = {
            "query": query,
            "start": start,
            "end": end,
            "step": step,
            "limit": limit,
            "timeout": _timeout_param(timeout_millis),
        }
        data = self._get_envelope("/api/v1/query_range", params=params)
        if not isinstance(data, dict):
            raise PrometheusClientError("Unexpected payload for Prometheus range query.")
        return data

    def query_exemplars(self, query: str, start: Timestamp, end: Timestamp) -> List[Dict[str, Any]]:
        data = self._get_envelope("/api/v1/query_exemplars", params={"query": query, "start": start, "end": end})
        return list(expect_list(data, context="Prometheus exemplar query", error_class=PrometheusClientError))

    # -- Metadata endpoints ------------------------------------------------

    def get_labels(self, query_params: Optional[QueryParams] = None) -> List[str]:
        """
        List label names.

        ``__name__`` is dropped from the result: it holds the metric name and
        is not a label callers can filter or group by.
        """

        data = self._get_envelope("/api/v1/labels", params=query_params)
        labels = expect_list(data, context="Prometheus label names", error_class=PrometheusClientError)
        return [str(label) for label in labels if label != METRIC_NAME_LABEL]

    def get_label_values(self, label_name: str, query_params: Optional[QueryParams] = None) -> List[str]:
        path = f"/api/v1/label/{quote(label_name, safe='')}/values"
        data = self._get_envelope(path, params=query_params)
        return [str(value) for value in expect_list(data, context=f"values of label '{label_name}'", error_class=PrometheusClientError)]

    def get_all_metrics(self, query_params: Optional[QueryParams] = None) -> Dict[str, List[MetricMetadata]]:
        """Return metric name to metadata records, from ``/api/v1/metadata``."""

        data = self._get_envelope("/api/v1/metadata", params=query_params)
        if not isinstance(data, dict):
            raise PrometheusClientError("Unexpected payload for Prometheus metric metadata.")
        metrics: Dict[str, List[MetricMetadata]] = {}
        for metric_name, records in data.items():
            if not isinstance(records, list):
                continue
            metrics[str(metric_name)] = [MetricMetadata.from_payload(record) for record in records if isinstance(record, Mapping)]
        return metrics

    def get_series(self, query_params: Optional[QueryParams] = None) -> List[Dict[str, str]]:
        data = self._get_envelope("/api/v1/series", params=query_params)
        series = expect_list(data, context="Prometheus series", error_class=PrometheusClientError)
        return [{str(key): str(value) for key, value in entry.items()} for entry in series if isinstance(entry, Mapping)]

    def verify(self) -> VerificationResult:
        try:
            metric_names = self.get_label_values(METRIC_NAME_LABEL)
        except ProtocolClientError as exc:
            return VerificationResult(success=False, message=f"Prometheus verification failed: {exc}")

        details: Dict[str, object] = {"metric_count": len(metric_names)}
        if metric_names:
            details["sample_metric"] = metric_names[0]
        return VerificationResult(success=True, message="Prometheus API reachable.", details=details)

    # -- Envelope handling -------------------------------------------------

    def _get_envelope(self, path: str, *, params: Optional[QueryParams] = None) -> Any:
        return self._read_envelope(self._get_json(path, params=params))

    def _read_envelope(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise PrometheusClientError("Prometheus returned unexpected body, please verify your prometheus server setup.")
        status = payload.get("status")
        if status != "success":
            message = payload.get("error") or f"Prometheus returned status '{status}' without an error message."
            self.logger.error("Prometheus returned error status", extra={"error": message, "error_type": payload.get("errorType")})
            raise PrometheusQueryError(str(message))
        return payload.get("data")
