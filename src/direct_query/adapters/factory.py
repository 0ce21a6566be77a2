"""
Resolution of data source names into ready protocol clients.
"""

from __future__ import annotations

from logging import LoggerAdapter
from typing import Callable, Dict, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from ..config import DirectQuerySettings
from ..core.logging import get_logger
from ..core.registry import DataSourceMetadata, DataSourceService, DataSourceType
from ..errors import DataSourceConfigurationError, UnsupportedDataSourceTypeError
from .api import AlertManagerClient, PrometheusClient
from .base import DataSourceClient
from .transport import (
    ALERTMANAGER_PREFIX,
    PROMETHEUS_PREFIX,
    build_http_client,
    create_alertmanager_properties,
    has_alertmanager_config,
    property_key,
)

ClientConstructor = Callable[[DataSourceMetadata], DataSourceClient]


def parse_base_uri(value: Optional[str], *, label: str) -> str:
    """
    Validate a backend base URI.

    Raises
    ------
    DataSourceConfigurationError
        When the value is missing, lacks an ``http``/``https`` scheme, or has no host.
    """

    if value is None or not value.strip():
        raise DataSourceConfigurationError(f"Host is required for {label} data source")
    candidate = value.strip()
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
    except ValueError as exc:
        raise DataSourceConfigurationError(f"Invalid {label} URI: {candidate}") from exc
    if parts.scheme not in {"http", "https"} or not host:
        raise DataSourceConfigurationError(f"Invalid {label} URI: {candidate}")
    return candidate


class DataSourceClientFactory:
    """
    Build protocol clients for named data sources.

    Each call constructs a fresh client; nothing is cached between calls.

    Parameters
    ----------
    datasource_service:
        Catalogue resolving names to :class:`DataSourceMetadata`.
    settings:
        Runtime settings supplying the host deny list and timeouts.
    transport:
        Optional httpx transport shared by every client built, used to stub backends.
    logger:
        Optional injected logger.
    """

    def __init__(
        self,
        datasource_service: DataSourceService,
        settings: Optional[DirectQuerySettings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> None:
        self.datasource_service = datasource_service
        self.settings = settings or DirectQuerySettings()
        self.logger = logger or get_logger(f"{__name__}.{self.__class__.__name__}")
        self._transport = transport
        self._constructors: Dict[DataSourceType, ClientConstructor] = {
            DataSourceType.PROMETHEUS: self._create_prometheus_client,
        }

    def register_constructor(self, datasource_type: DataSourceType, constructor: ClientConstructor) -> None:
        """Register or replace the client constructor for a connector type."""

        self._constructors[datasource_type] = constructor

    def get_datasource_type(self, datasource_name: str) -> DataSourceType:
        return self.datasource_service.get_datasource_metadata(datasource_name).connector

    def create_client(self, datasource_name: str) -> DataSourceClient:
        """
        Create a client for ``datasource_name``.

        Raises
        ------
        DataSourceNotFoundError
            When the name is not in the catalogue.
        UnsupportedDataSourceTypeError
            When no constructor is registered for the connector type.
        DataSourceConfigurationError
            When connection properties are missing or invalid.
        """

        metadata = self.datasource_service.get_datasource_metadata(datasource_name)
        constructor = self._constructors.get(metadata.connector)
        if constructor is None:
            raise UnsupportedDataSourceTypeError(f"Unsupported data source type: {metadata.connector.value}")
        self.logger.debug("Creating client", extra={"datasource": metadata.name, "connector": metadata.connector.value})
        return constructor(metadata)

    def _build_http_client(self, properties: Mapping[str, str]) -> httpx.Client:
        return build_http_client(
            properties,
            self.settings.uri_hosts_deny_list,
            connect_timeout=self.settings.http.connect_timeout,
            call_timeout=self.settings.http.call_timeout,
            transport=self._transport,
        )

    def _create_prometheus_client(self, metadata: DataSourceMetadata) -> PrometheusClient:
        properties = metadata.properties
        uri = parse_base_uri(properties.get(property_key(PROMETHEUS_PREFIX, "uri")), label="Prometheus")

        http_client = self._build_http_client(properties)

        alertmanager: Optional[AlertManagerClient] = None
        if has_alertmanager_config(properties):
            try:
                alertmanager_uri = parse_base_uri(properties.get(property_key(ALERTMANAGER_PREFIX, "uri")), label="Alertmanager")
                alertmanager = AlertManagerClient(
                    self._build_http_client(create_alertmanager_properties(properties)),
                    alertmanager_uri,
                )
            except DataSourceConfigurationError:
                http_client.close()
                raise

        return PrometheusClient(http_client, uri, alertmanager=alertmanager)
