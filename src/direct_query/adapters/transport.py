"""
Authenticated HTTP transport construction for protocol clients.

:func:`build_http_client` turns a data source property map into a ready
:class:`httpx.Client`: fixed timeouts, redirects disabled, a request hook that
enforces the host deny list, and at most one authentication strategy (HTTP
basic or AWS SigV4 request signing).
"""

from __future__ import annotations

import ipaddress
import socket
from fnmatch import fnmatchcase
from typing import Callable, Dict, Generator, List, Mapping, Optional, Sequence, Union

import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from ..config import DEFAULT_CALL_TIMEOUT, DEFAULT_CONNECT_TIMEOUT
from ..errors import DataSourceConfigurationError, DisallowedHostError

PROMETHEUS_PREFIX = "prometheus"
ALERTMANAGER_PREFIX = "alertmanager"
AWS_SIGV4_SERVICE = "aps"

BASIC_AUTH_TYPES = frozenset({"basicauth", "basic"})
AWS_SIGV4_AUTH_TYPES = frozenset({"awssigv4auth", "awssigv4"})

_AUTH_FIELDS = ("type", "username", "password", "region", "access_key", "secret_key")


def property_key(prefix: str, name: str) -> str:
    """Return the fully qualified property key, e.g. ``prometheus.auth.type``."""

    if name == "uri":
        return f"{prefix}.uri"
    return f"{prefix}.auth.{name}"


class AwsSigV4Auth(httpx.Auth):
    """
    httpx authentication flow signing each request with AWS Signature Version 4.

    Parameters
    ----------
    access_key:
        AWS access key id.
    secret_key:
        AWS secret access key.
    region:
        Region of the managed Prometheus workspace.
    service:
        Signing service namespace. Amazon Managed Prometheus uses ``aps``.
    """

    requires_request_body = True

    def __init__(self, access_key: str, secret_key: str, region: str, service: str = AWS_SIGV4_SERVICE) -> None:
        self._credentials = Credentials(access_key, secret_key)
        self.region = region
        self.service = service

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        aws_request = AWSRequest(
            method=request.method,
            url=str(request.url),
            data=request.content,
            headers={"host": request.url.netloc.decode("ascii")},
        )
        SigV4Auth(self._credentials, self.service, self.region).add_auth(aws_request)
        for key, value in aws_request.headers.items():
            request.headers[key] = value
        yield request


IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _unmap(address: IPAddress) -> IPAddress:
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def resolve_host_addresses(host: str) -> List[IPAddress]:
    """
    Return the addresses ``host`` refers to.

    IP literals are returned as-is. Other hosts go through
    :func:`socket.getaddrinfo`, which also expands shorthand IPv4 forms such as
    ``127.1`` or ``2130706433``. IPv4-mapped IPv6 addresses are reduced to
    their IPv4 form. Unresolvable hosts yield an empty list.
    """

    try:
        return [_unmap(ipaddress.ip_address(host))]
    except ValueError:
        pass
    try:
        infos = socket.getaddrinfo(host, None)
    except (socket.gaierror, UnicodeError):
        return []

    addresses: List[IPAddress] = []
    for _family, _type, _proto, _canonname, sockaddr in infos:
        try:
            address = _unmap(ipaddress.ip_address(str(sockaddr[0]).split("%", 1)[0]))
        except ValueError:
            continue
        if address not in addresses:
            addresses.append(address)
    return addresses


def is_host_denied(host: str, deny_list: Sequence[str]) -> bool:
    """
    Check ``host`` against deny list entries.

    Entries are either case-insensitive glob patterns (``*.internal``) matched
    against the host name, or CIDR ranges (``10.0.0.0/8``) matched against
    every address the host resolves to. The host is only resolved when the
    deny list holds a CIDR range.
    """

    normalised = host.strip("[]").lower()
    networks = []
    for entry in deny_list:
        pattern = entry.strip().lower()
        if not pattern:
            continue
        try:
            networks.append(ipaddress.ip_network(pattern, strict=False))
        except ValueError:
            if fnmatchcase(normalised, pattern):
                return True

    if not networks:
        return False
    for address in resolve_host_addresses(normalised):
        if any(address.version == network.version and address in network for network in networks):
            return True
    return False


def uri_validator(deny_list: Sequence[str]) -> Callable[[httpx.Request], None]:
    """Build an httpx request hook rejecting requests to denied hosts."""

    entries = tuple(deny_list)

    def validate(request: httpx.Request) -> None:
        if entries and is_host_denied(request.url.host, entries):
            raise DisallowedHostError(f"Disallowed hostname in the uri: {request.url.host}. Validate with the datasources uri_hosts_deny_list setting.")

    return validate


def build_auth(properties: Mapping[str, str], *, prefix: str = PROMETHEUS_PREFIX) -> Optional[httpx.Auth]:
    """
    Derive the authentication strategy from ``<prefix>.auth.*`` properties.

    Returns ``None`` for anonymous access.
    """

    auth_type = (properties.get(property_key(prefix, "type")) or "").strip()
    if not auth_type:
        return None

    lowered = auth_type.lower()
    if lowered in BASIC_AUTH_TYPES:
        username = properties.get(property_key(prefix, "username"))
        password = properties.get(property_key(prefix, "password"))
        if username is None or password is None:
            raise DataSourceConfigurationError(f"{property_key(prefix, 'username')} and {property_key(prefix, 'password')} are required for basic authentication.")
        return httpx.BasicAuth(username, password)

    if lowered in AWS_SIGV4_AUTH_TYPES:
        access_key = properties.get(property_key(prefix, "access_key"))
        secret_key = properties.get(property_key(prefix, "secret_key"))
        region = properties.get(property_key(prefix, "region"))
        if not access_key or not secret_key or not region:
            raise DataSourceConfigurationError(
                f"{property_key(prefix, 'access_key')}, {property_key(prefix, 'secret_key')} and {property_key(prefix, 'region')} are required for AWS SigV4 authentication."
            )
        return AwsSigV4Auth(access_key, secret_key, region)

    raise DataSourceConfigurationError(f"Auth type '{auth_type}' is not supported with {prefix.capitalize()} connector.")


def build_http_client(
    properties: Mapping[str, str],
    deny_list: Sequence[str] = (),
    *,
    prefix: str = PROMETHEUS_PREFIX,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    call_timeout: float = DEFAULT_CALL_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Build an HTTP client for a data source.

    Parameters
    ----------
    properties:
        Data source property map.
    deny_list:
        Host patterns or CIDR ranges that must never be contacted.
    prefix:
        Property namespace holding the auth settings (``prometheus`` or ``alertmanager``).
    connect_timeout:
        Seconds allowed to establish a connection.
    call_timeout:
        Seconds allowed for each read, write and pool acquisition.
    transport:
        Optional transport override, used by tests and embedders.
    """

    auth = build_auth(properties, prefix=prefix)
    return httpx.Client(
        auth=auth,
        timeout=httpx.Timeout(call_timeout, connect=connect_timeout),
        follow_redirects=False,
        event_hooks={"request": [uri_validator(deny_list)]},
        transport=transport,
    )


def has_alertmanager_config(properties: Mapping[str, str]) -> bool:
    """Return ``True`` when the data source declares an Alertmanager endpoint."""

    return bool(properties.get(property_key(ALERTMANAGER_PREFIX, "uri")))


def create_alertmanager_properties(properties: Mapping[str, str]) -> Dict[str, str]:
    """
    Remap ``alertmanager.auth.*`` properties onto the ``prometheus.auth.*`` key space.

    The result can be fed to :func:`build_http_client` with the default prefix,
    so Alertmanager credentials never leak into the Prometheus transport and
    vice versa.
    """

    remapped: Dict[str, str] = {}
    for name in _AUTH_FIELDS:
        value = properties.get(property_key(ALERTMANAGER_PREFIX, name))
        if value is not None:
            remapped[property_key(PROMETHEUS_PREFIX, name)] = value
    return remapped
