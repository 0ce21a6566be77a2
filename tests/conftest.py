from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import httpx
import pytest
from typer.testing import CliRunner

from direct_query.adapters.api import PrometheusClient
from direct_query.adapters.transport import build_http_client
from direct_query.cli.main import app

PROMETHEUS_URI = "http://prometheus.test:9090"
ALERTMANAGER_URI = "http://alertmanager.test:9093"

CATALOG_YAML = f"""
- name: metrics
  connector: prometheus
  description: Test Prometheus
  properties:
    prometheus.uri: {PROMETHEUS_URI}
- name: metrics_with_alerts
  connector: prometheus
  properties:
    prometheus.uri: {PROMETHEUS_URI}
    prometheus.auth.type: basicauth
    prometheus.auth.username: admin
    prometheus.auth.password: s3cret
    alertmanager.uri: {ALERTMANAGER_URI}
- name: logs
  connector: opensearch
  properties:
    opensearch.uri: http://opensearch.test:9200
"""


class StubBackend:
    """Routes requests by URL path to canned responses and records every request."""

    def __init__(self) -> None:
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add_json(self, path: str, payload: Any, *, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, json=payload)

    def add_success(self, path: str, data: Any) -> None:
        self.add_json(path, {"status": "success", "data": data})

    def add_text(self, path: str, text: str, *, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, text=text)

    def add_handler(self, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text=f"no route for {request.url.path}")
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "expected at least one request"
        return self.requests[-1]

    def last_params(self) -> Dict[str, List[str]]:
        params: Dict[str, List[str]] = {}
        for key, value in self.last_request.url.params.multi_items():
            params.setdefault(key, []).append(value)
        return params

    def last_json_body(self) -> Any:
        return json.loads(self.last_request.content)


@pytest.fixture()
def backend() -> StubBackend:
    return StubBackend()


@pytest.fixture()
def make_prometheus_client(backend: StubBackend) -> Callable[..., PrometheusClient]:
    def factory(
        properties: Optional[Mapping[str, str]] = None,
        *,
        uri: str = PROMETHEUS_URI,
        deny_list: Sequence[str] = (),
    ) -> PrometheusClient:
        http_client = build_http_client(properties or {}, deny_list, transport=backend.transport)
        return PrometheusClient(http_client, uri)

    return factory


@pytest.fixture()
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "datasources.yaml"
    path.write_text(CATALOG_YAML, encoding="utf-8")
    return path


@pytest.fixture(scope="session")
def bundled_catalog_file() -> Path:
    datasources_pkg = "direct_query.resources.datasources"
    with resources.as_file(resources.files(datasources_pkg) / "local.yaml") as ref:
        return Path(ref)


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_app():
    return app
