from __future__ import annotations

import ipaddress
import socket

import httpx
import pytest

from direct_query.adapters.transport import (
    AwsSigV4Auth,
    build_auth,
    build_http_client,
    create_alertmanager_properties,
    has_alertmanager_config,
    is_host_denied,
    resolve_host_addresses,
    property_key,
)
from direct_query.errors import DataSourceConfigurationError, DisallowedHostError


def test_property_key_namespaces():
    assert property_key("prometheus", "uri") == "prometheus.uri"
    assert property_key("prometheus", "type") == "prometheus.auth.type"
    assert property_key("alertmanager", "region") == "alertmanager.auth.region"


def test_anonymous_access_when_no_auth_type():
    assert build_auth({"prometheus.uri": "http://prometheus.test:9090"}) is None
    assert build_auth({"prometheus.auth.type": "   "}) is None


@pytest.mark.parametrize("auth_type", ["basicauth", "BASIC", "Basic"])
def test_basic_auth_variants(auth_type):
    auth = build_auth({"prometheus.auth.type": auth_type, "prometheus.auth.username": "u", "prometheus.auth.password": "p"})

    assert isinstance(auth, httpx.BasicAuth)


def test_basic_auth_requires_credentials():
    with pytest.raises(DataSourceConfigurationError, match="prometheus.auth.username"):
        build_auth({"prometheus.auth.type": "basicauth", "prometheus.auth.username": "u"})


@pytest.mark.parametrize("auth_type", ["awssigv4auth", "AWSSIGV4", "awssigv4"])
def test_sigv4_auth_variants(auth_type):
    auth = build_auth(
        {
            "prometheus.auth.type": auth_type,
            "prometheus.auth.access_key": "AKIDEXAMPLE",
            "prometheus.auth.secret_key": "secret",
            "prometheus.auth.region": "us-west-2",
        }
    )

    assert isinstance(auth, AwsSigV4Auth)
    assert auth.region == "us-west-2"
    assert auth.service == "aps"


def test_sigv4_auth_requires_region():
    with pytest.raises(DataSourceConfigurationError, match="prometheus.auth.region"):
        build_auth({"prometheus.auth.type": "awssigv4auth", "prometheus.auth.access_key": "a", "prometheus.auth.secret_key": "b"})


@pytest.mark.parametrize("auth_type", ["oauth2", "kerberos", "bearer", "noauth"])
def test_unsupported_auth_type_names_offending_value(auth_type):
    with pytest.raises(DataSourceConfigurationError) as excinfo:
        build_http_client({"prometheus.auth.type": auth_type})

    assert auth_type in str(excinfo.value)
    assert "is not supported with Prometheus connector" in str(excinfo.value)


def test_http_client_configuration():
    client = build_http_client({}, connect_timeout=30, call_timeout=60)

    assert client.timeout.connect == 30
    assert client.timeout.read == 60
    assert client.follow_redirects is False
    client.close()


def test_redirects_are_not_followed():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/labels":
            return httpx.Response(302, headers={"Location": "http://elsewhere.test/api/v1/labels"})
        return httpx.Response(200, json={"status": "success", "data": []})

    client = build_http_client({}, transport=httpx.MockTransport(handler))

    response = client.get("http://prometheus.test:9090/api/v1/labels")

    assert response.status_code == 302


def test_sigv4_auth_signs_requests():
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"status": "success", "data": []})

    properties = {
        "prometheus.auth.type": "awssigv4auth",
        "prometheus.auth.access_key": "AKIDEXAMPLE",
        "prometheus.auth.secret_key": "secret",
        "prometheus.auth.region": "us-east-1",
    }
    client = build_http_client(properties, transport=httpx.MockTransport(handler))

    client.get("https://aps-workspaces.us-east-1.amazonaws.com/workspaces/ws-1/api/v1/labels")

    authorization = captured[0].headers["Authorization"]
    assert authorization.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/")
    assert "/us-east-1/aps/aws4_request" in authorization
    assert "X-Amz-Date" in captured[0].headers


@pytest.mark.parametrize(
    ("host", "deny_list", "expected"),
    [
        ("127.0.0.1", ["127.0.0.0/8"], True),
        ("10.1.2.3", ["127.0.0.0/8", "10.0.0.0/8"], True),
        ("192.168.1.10", ["10.0.0.0/8"], False),
        ("::1", ["::1/128"], True),
        ("metadata.internal", ["*.internal"], True),
        ("Metadata.Internal", ["*.internal"], True),
        ("prometheus.example.com", ["*.internal"], False),
        ("localhost", ["localhost"], True),
        ("localhost", ["127.0.0.0/8", "::1/128"], True),
        ("::ffff:127.0.0.1", ["127.0.0.0/8"], True),
        ("[::ffff:7f00:1]", ["127.0.0.0/8"], True),
        ("2130706433", ["127.0.0.0/8"], True),
        ("127.1", ["127.0.0.0/8"], True),
        ("::ffff:192.168.1.10", ["10.0.0.0/8"], False),
        ("prometheus.test", [], False),
    ],
)
def test_is_host_denied(host, deny_list, expected):
    assert is_host_denied(host, deny_list) is expected


def test_denied_host_raises_before_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be reached
        calls.append(request)
        return httpx.Response(200)

    client = build_http_client({}, ["*.internal"], transport=httpx.MockTransport(handler))

    with pytest.raises(DisallowedHostError, match="metadata.internal"):
        client.get("http://metadata.internal/api/v1/labels")

    assert calls == []


def test_alertmanager_properties_are_remapped():
    properties = {
        "prometheus.uri": "http://prometheus.test:9090",
        "prometheus.auth.type": "basicauth",
        "prometheus.auth.username": "prom",
        "prometheus.auth.password": "prom-pass",
        "alertmanager.uri": "http://alertmanager.test:9093",
        "alertmanager.auth.type": "basicauth",
        "alertmanager.auth.username": "am",
        "alertmanager.auth.password": "am-pass",
    }

    assert has_alertmanager_config(properties)
    assert create_alertmanager_properties(properties) == {
        "prometheus.auth.type": "basicauth",
        "prometheus.auth.username": "am",
        "prometheus.auth.password": "am-pass",
    }
    assert not has_alertmanager_config({"prometheus.uri": "http://prometheus.test:9090"})


def _fake_getaddrinfo(mapping):
    def getaddrinfo(host, port, *args, **kwargs):
        if host not in mapping:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return [(socket.AF_INET6 if ":" in address else socket.AF_INET, socket.SOCK_STREAM, 6, "", (address, 0)) for address in mapping[host]]

    return getaddrinfo


def test_resolved_host_names_are_checked_against_cidr_entries(monkeypatch):
    monkeypatch.setattr(socket, "getaddrinfo", _fake_getaddrinfo({"metrics.corp": ["203.0.113.7", "10.4.0.9"], "public.example": ["203.0.113.8"]}))

    assert is_host_denied("metrics.corp", ["10.0.0.0/8"])
    assert not is_host_denied("public.example", ["10.0.0.0/8"])
    assert not is_host_denied("unknown.example", ["10.0.0.0/8"])


def test_host_is_not_resolved_without_cidr_entries(monkeypatch):
    def getaddrinfo(*args, **kwargs):  # pragma: no cover - must not be reached
        raise AssertionError("host must not be resolved")

    monkeypatch.setattr(socket, "getaddrinfo", getaddrinfo)

    assert is_host_denied("metadata.internal", ["*.internal"])
    assert not is_host_denied("prometheus.example.com", ["*.internal"])


def test_resolve_host_addresses_unmaps_ipv4(monkeypatch):
    monkeypatch.setattr(socket, "getaddrinfo", _fake_getaddrinfo({"dual.test": ["::ffff:127.0.0.1", "127.0.0.1", "fe80::1%eth0"]}))

    assert resolve_host_addresses("dual.test") == [ipaddress.ip_address("127.0.0.1"), ipaddress.ip_address("fe80::1")]
    assert resolve_host_addresses("::ffff:10.0.0.1") == [ipaddress.ip_address("10.0.0.1")]


def test_mapped_ipv6_literal_is_rejected_before_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be reached
        calls.append(request)
        return httpx.Response(200)

    client = build_http_client({}, ["127.0.0.0/8"], transport=httpx.MockTransport(handler))

    with pytest.raises(DisallowedHostError, match="::ffff:127.0.0.1"):
        client.get("http://[::ffff:127.0.0.1]:9090/api/v1/labels")

    assert calls == []
