"""
Direct query executor service coordinating the client factory, handler registry
and execution context.

The service is the entry point embedding hosts and the CLI call. It owns the
per-request lifecycle: validate, build a fresh client, dispatch to the matching
handler, close the client, and render the response.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Dict, Optional

import httpx

from ..adapters import DataSourceClient, DataSourceClientFactory, VerificationResult
from ..config import DirectQuerySettings
from ..core import ExecutionContext, bind_extra, get_logger
from ..errors import DataSourcesDisabledError, ProtocolClientError, QueryValidationError, UnsupportedDataSourceTypeError
from ..queries import (
    ExecuteDirectQueryRequest,
    ExecuteDirectQueryResponse,
    GetDirectQueryResourcesRequest,
    GetDirectQueryResourcesResponse,
    PrometheusQueryHandler,
    QueryHandler,
    QueryHandlerRegistry,
    validate_request,
)


@dataclass(slots=True)
class DirectQueryExecutorService:
    """High-level façade used by the CLI and embedding servers."""

    client_factory: DataSourceClientFactory
    handler_registry: QueryHandlerRegistry
    settings: DirectQuerySettings = field(default_factory=DirectQuerySettings)
    logger: Optional[LoggerAdapter] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_logger(self.__class__.__name__)

    @classmethod
    def from_context(cls, context: ExecutionContext, *, transport: Optional[httpx.BaseTransport] = None) -> "DirectQueryExecutorService":
        """
        Wire the default Prometheus stack from an execution context.

        Parameters
        ----------
        context:
            Supplies settings, the data source catalogue and the network capability.
        transport:
            Optional httpx transport handed to every client, used to stub backends.
        """

        factory = DataSourceClientFactory(
            context.datasources,
            context.settings,
            transport=transport,
            logger=context.get_logger("DataSourceClientFactory"),
        )
        registry = QueryHandlerRegistry(
            [PrometheusQueryHandler(context.network, logger=context.get_logger("PrometheusQueryHandler"))],
            logger=context.get_logger("QueryHandlerRegistry"),
        )
        return cls(
            client_factory=factory,
            handler_registry=registry,
            settings=context.settings,
            logger=context.get_logger(cls.__name__),
        )

    def execute_direct_query(self, request: ExecuteDirectQueryRequest) -> ExecuteDirectQueryResponse:
        """
        Execute a passthrough query and render the handler payload as JSON text.

        Validation problems are returned as an ``{"error": ...}`` result rather
        than raised. A fresh ``query_id`` is generated per call; ``session_id``
        is echoed back unchanged, ``None`` included.

        Raises
        ------
        DataSourcesDisabledError
            When the data source feature is switched off.
        DataSourceNotFoundError, DataSourceConfigurationError
            When the data source cannot be resolved into a client.
        UnsupportedDataSourceTypeError
            When no handler serves the data source's connector type.
        PrometheusClientError
            On wire failures talking to the backend.
        """

        self._require_enabled()
        query_id = str(uuid.uuid4())
        session_id = request.session_id
        log = bind_extra(self.logger, datasource=request.datasource, query_id=query_id, session_id=session_id)

        try:
            validate_request(request)
        except QueryValidationError as exc:
            log.debug("Rejected direct query request", extra={"error": str(exc)})
            return ExecuteDirectQueryResponse(query_id=query_id, result=json.dumps({"error": str(exc)}), session_id=session_id)

        log.debug("Executing direct query")
        client = self.client_factory.create_client(str(request.datasource))
        try:
            handler = self._resolve_handler(client)
            payload = handler.execute_query(client, request)
        finally:
            client.close()

        if "error" in payload:
            log.debug("Direct query returned an error payload", extra={"error": payload["error"]})
        return ExecuteDirectQueryResponse(query_id=query_id, result=json.dumps(payload), session_id=session_id)

    def get_directquery_resources(self, request: GetDirectQueryResourcesRequest) -> GetDirectQueryResourcesResponse:
        """
        Fetch backend resources (labels, metadata, series, Alertmanager objects).

        Raises
        ------
        InvalidResourceRequestError
            When the resource type is unknown or a required name is missing.
        """

        self._require_enabled()
        log = bind_extra(self.logger, datasource=request.datasource, resource_type=request.resource_type)
        log.debug("Fetching direct query resources")
        client = self.client_factory.create_client(str(request.datasource))
        try:
            handler = self._resolve_handler(client)
            data = handler.get_resources(client, request)
        finally:
            client.close()
        return GetDirectQueryResourcesResponse(data=data)

    def verify_datasource(self, datasource: str) -> VerificationResult:
        """Probe a data source's backend, reporting failures in the result."""

        self._require_enabled()
        client = self.client_factory.create_client(datasource)
        try:
            return client.verify()
        except ProtocolClientError as exc:
            return VerificationResult(success=False, message=str(exc))
        finally:
            client.close()

    def describe_datasource(self, datasource: str) -> Dict[str, Any]:
        """Return catalogue metadata for ``datasource`` with credentials redacted."""

        metadata = self.client_factory.datasource_service.get_datasource_metadata(datasource)
        return {
            "name": metadata.name,
            "connector": metadata.connector.value,
            "description": metadata.description,
            "properties": metadata.redacted_properties(),
        }

    def _resolve_handler(self, client: DataSourceClient) -> QueryHandler:
        handler = self.handler_registry.get_query_handler(client)
        if handler is None:
            connector = getattr(client, "datasource_type", None)
            raise UnsupportedDataSourceTypeError(f"Unsupported data source type: {getattr(connector, 'value', connector)}")
        return handler

    def _require_enabled(self) -> None:
        if not self.settings.datasources_enabled:
            raise DataSourcesDisabledError("Data source feature is disabled in the current settings.")
