"""
Request and response models exchanged with the direct query core.

The ``from_payload`` constructors accept the camelCase documents produced by
the hosting server's transport layer; ``to_dict`` renders responses back into
that shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..errors import InvalidResourceRequestError, QueryValidationError

DEFAULT_LANGUAGE = "promql"


class PrometheusQueryType(str, Enum):
    """Query modes supported against Prometheus."""

    INSTANT = "instant"
    RANGE = "range"

    @classmethod
    def parse(cls, value: object) -> Optional["PrometheusQueryType"]:
        """Case-insensitive lookup. Unknown or empty values yield ``None``."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalised = value.strip().lower()
        for item in cls:
            if item.value == normalised:
                return item
        return None


class ResourceType(str, Enum):
    """Resource lookups served by :meth:`PrometheusQueryHandler.get_resources`."""

    LABELS = "labels"
    LABEL_VALUES = "label"
    METADATA = "metadata"
    SERIES = "series"
    ALERTMANAGER_ALERTS = "alertmanager_alerts"
    ALERTMANAGER_ALERT_GROUPS = "alertmanager_alert_groups"
    ALERTMANAGER_RECEIVERS = "alertmanager_receivers"
    ALERTMANAGER_SILENCES = "alertmanager_silences"

    @classmethod
    def parse(cls, value: object) -> "ResourceType":
        """
        Resolve a resource type from its wire value or enum name, ignoring case
        and underscores, so ``label_values`` and ``LabelValues`` both match.

        Raises
        ------
        InvalidResourceRequestError
            When ``value`` matches no resource type.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalised = value.strip().lower().replace("_", "")
            for item in cls:
                if normalised in (item.value.replace("_", ""), item.name.lower().replace("_", "")):
                    return item
        raise InvalidResourceRequestError(f"Invalid resource type: {value}")

    @property
    def is_alertmanager(self) -> bool:
        return self.value.startswith("alertmanager_")


@dataclass(slots=True)
class PrometheusOptions:
    """
    Prometheus specific request options.

    ``start``, ``end`` and ``time`` are kept as the strings received from the
    caller; the query handler parses them as epoch seconds.
    """

    query_type: Optional[PrometheusQueryType] = None
    start: Optional[str] = None
    end: Optional[str] = None
    time: Optional[str] = None
    step: Optional[str] = None


@dataclass(slots=True)
class ExecuteDirectQueryRequest:
    """
    A single passthrough query against one data source.

    Attributes
    ----------
    datasource:
        Name of the data source to query.
    query:
        Backend specific expression, e.g. a PromQL query.
    language:
        Query language, lower-cased. Only ``promql`` is served today.
    options:
        Mode and time window of the query.
    max_results:
        Optional cap forwarded to the backend as ``limit``.
    timeout_millis:
        Optional evaluation timeout forwarded to the backend.
    session_id:
        Opaque session identifier echoed back in the response.
    """

    datasource: Optional[str]
    query: Optional[str]
    language: Optional[str] = DEFAULT_LANGUAGE
    options: PrometheusOptions = field(default_factory=PrometheusOptions)
    max_results: Optional[int] = None
    timeout_millis: Optional[int] = None
    session_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, datasource: Optional[str] = None) -> "ExecuteDirectQueryRequest":
        """
        Build a request from a transport-layer document.

        ``datasource`` is used when the document itself does not name one
        (the hosting server passes the data source from the URL path).
        """

        raw_options = payload.get("options")
        options_payload: Mapping[str, Any] = raw_options if isinstance(raw_options, Mapping) else {}

        def option(*keys: str) -> Optional[str]:
            for source in (options_payload, payload):
                for key in keys:
                    value = source.get(key)
                    if value is not None and value != "":
                        return str(value)
            return None

        language = _optional_str(payload.get("language"))
        return cls(
            datasource=_optional_str(payload.get("dataSource") or payload.get("datasource") or payload.get("dataSources")) or datasource,
            query=_optional_str(payload.get("query")),
            language=language.lower() if language else DEFAULT_LANGUAGE,
            options=PrometheusOptions(
                query_type=PrometheusQueryType.parse(option("queryType")),
                start=option("start", "startTime"),
                end=option("end", "endTime"),
                time=option("time"),
                step=option("step"),
            ),
            max_results=_optional_int(payload.get("maxResults"), field_name="maxResults"),
            timeout_millis=_optional_int(payload.get("timeoutMillis"), field_name="timeoutMillis"),
            session_id=_optional_str(payload.get("sessionId")),
        )


@dataclass(slots=True)
class GetDirectQueryResourcesRequest:
    """Lookup of backend resources (labels, metadata, series, alerts) for a data source."""

    datasource: Optional[str]
    resource_type: Optional[str]
    resource_name: Optional[str] = None
    query_params: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ExecuteDirectQueryResponse:
    """Response relayed to the caller; ``result`` is a JSON document rendered as text."""

    query_id: str
    result: str
    session_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"queryId": self.query_id, "result": self.result, "sessionId": self.session_id}


@dataclass(slots=True)
class GetDirectQueryResourcesResponse:
    data: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data}


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: object, *, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise QueryValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise QueryValidationError(f"{field_name} must be an integer") from None
