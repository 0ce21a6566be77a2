from __future__ import annotations

import logging

from direct_query.core.logging import get_logger
from direct_query.core.registry import DataSourceType
from direct_query.queries import BaseQueryHandler, PrometheusQueryHandler, QueryHandlerRegistry


class _ClientA:
    datasource_type = DataSourceType.PROMETHEUS


class _ClientB:
    datasource_type = DataSourceType.OPENSEARCH


class _HandlerA(BaseQueryHandler):
    datasource_type = DataSourceType.PROMETHEUS

    def execute_query(self, client, request):  # pragma: no cover - dispatch only
        return {}

    def get_resources(self, client, request):  # pragma: no cover - dispatch only
        return []


class _HandlerB(BaseQueryHandler):
    datasource_type = DataSourceType.OPENSEARCH

    def execute_query(self, client, request):  # pragma: no cover - dispatch only
        return {}

    def get_resources(self, client, request):  # pragma: no cover - dispatch only
        return []


def test_resolves_handler_by_connector_tag():
    h1, h2 = _HandlerA(), _HandlerB()
    registry = QueryHandlerRegistry([h1, h2])

    assert registry.get_query_handler(_ClientA()) is h1
    assert registry.get_query_handler(_ClientB()) is h2
    assert len(registry) == 2
    assert list(registry) == [h1, h2]


def test_returns_none_when_no_handler_matches():
    registry = QueryHandlerRegistry([_HandlerB()])

    assert registry.get_query_handler(_ClientA()) is None
    assert registry.get_query_handler(object()) is None


def test_first_registered_handler_wins_and_duplicate_is_logged(caplog):
    logger = get_logger("tests.handler_registry")
    first, second = _HandlerA(), _HandlerA()

    with caplog.at_level(logging.WARNING, logger="tests.handler_registry"):
        registry = QueryHandlerRegistry([first], logger=logger)
        registry.register(second)

    assert registry.get_query_handler(_ClientA()) is first
    assert any("Multiple query handlers" in record.getMessage() for record in caplog.records)
    assert caplog.records[-1].connector == "PROMETHEUS"


def test_prometheus_handler_claims_prometheus_clients_only(make_prometheus_client):
    handler = PrometheusQueryHandler()

    assert handler.can_handle(make_prometheus_client())
    assert not handler.can_handle(_ClientB())
