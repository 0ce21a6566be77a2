from __future__ import annotations

import pytest

from direct_query.errors import InvalidResourceRequestError, QueryValidationError
from direct_query.queries import (
    ExecuteDirectQueryRequest,
    ExecuteDirectQueryResponse,
    PrometheusOptions,
    PrometheusQueryType,
    ResourceType,
    validate_request,
)


def test_request_from_transport_payload():
    request = ExecuteDirectQueryRequest.from_payload(
        {
            "dataSource": "metrics",
            "query": "rate(http_requests_total[5m])",
            "language": "PROMQL",
            "options": {"queryType": "Range", "start": 1435781430, "end": "1435781460", "step": "15s"},
            "maxResults": "50",
            "timeoutMillis": 1000,
            "sessionId": "session-1",
        }
    )

    assert request.datasource == "metrics"
    assert request.language == "promql"
    assert request.options == PrometheusOptions(query_type=PrometheusQueryType.RANGE, start="1435781430", end="1435781460", step="15s")
    assert request.max_results == 50
    assert request.timeout_millis == 1000
    assert request.session_id == "session-1"


def test_request_reads_top_level_options_and_path_datasource():
    request = ExecuteDirectQueryRequest.from_payload({"query": "up", "queryType": "instant", "time": "1435781451"}, datasource="from-path")

    assert request.datasource == "from-path"
    assert request.language == "promql"
    assert request.options.query_type is PrometheusQueryType.INSTANT
    assert request.options.time == "1435781451"
    assert request.session_id is None


def test_request_accepts_start_time_aliases():
    request = ExecuteDirectQueryRequest.from_payload({"query": "up", "options": {"queryType": "range", "startTime": "1", "endTime": "2"}})

    assert (request.options.start, request.options.end) == ("1", "2")


def test_unknown_query_type_parses_to_none():
    request = ExecuteDirectQueryRequest.from_payload({"query": "up", "options": {"queryType": "sliding"}})

    assert request.options.query_type is None


@pytest.mark.parametrize("value", ["ten", 1.5, True])
def test_non_integer_max_results_is_rejected(value):
    with pytest.raises(QueryValidationError, match="maxResults must be an integer"):
        ExecuteDirectQueryRequest.from_payload({"query": "up", "maxResults": value})


def test_response_serialises_to_transport_fields():
    response = ExecuteDirectQueryResponse(query_id="q-1", result='{"resultType": "vector"}', session_id="s-1")

    assert response.to_dict() == {"queryId": "q-1", "result": '{"resultType": "vector"}', "sessionId": "s-1"}


@pytest.mark.parametrize(
    ("request_kwargs", "message"),
    [
        ({"datasource": None, "query": "up"}, "Datasource is required"),
        ({"datasource": "metrics", "query": None}, "Query is required"),
        ({"datasource": "metrics", "query": "up", "language": None}, "Language type is required"),
        ({"datasource": "metrics", "query": "up", "language": "sql"}, "Unsupported language type: sql"),
        (
            {"datasource": "metrics", "query": "up", "options": PrometheusOptions(query_type=PrometheusQueryType.RANGE, start="20", end="10")},
            "End time must be after start time",
        ),
    ],
)
def test_validate_request_rejects(request_kwargs, message):
    with pytest.raises(QueryValidationError, match=message):
        validate_request(ExecuteDirectQueryRequest(**request_kwargs))


def test_validate_request_leaves_unparseable_times_to_handler():
    request = ExecuteDirectQueryRequest(
        datasource="metrics",
        query="up",
        options=PrometheusOptions(query_type=PrometheusQueryType.RANGE, start="yesterday", end="10"),
    )

    validate_request(request)


def test_resource_type_parse():
    assert ResourceType.parse("label") is ResourceType.LABEL_VALUES
    assert ResourceType.parse("LABEL_VALUES") is ResourceType.LABEL_VALUES
    assert ResourceType.parse("LabelValues") is ResourceType.LABEL_VALUES
    assert ResourceType.parse("labelvalues") is ResourceType.LABEL_VALUES
    assert ResourceType.parse("AlertmanagerAlertGroups") is ResourceType.ALERTMANAGER_ALERT_GROUPS
    assert ResourceType.parse("alertmanager_silences").is_alertmanager
    assert not ResourceType.LABELS.is_alertmanager
    with pytest.raises(InvalidResourceRequestError, match="Invalid resource type: exemplars"):
        ResourceType.parse("exemplars")
