"""
Query handler protocol and the registry that dispatches clients to handlers.

Dispatch is keyed on the connector type a client reports through its
``datasource_type`` property, not on the client's Python class. Registration
order is the tie-break when several handlers claim the same client; the
registry warns when that happens because at most one handler should match.
"""

from __future__ import annotations

from logging import LoggerAdapter
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Protocol

from ..adapters.base import DataSourceClient
from ..core.logging import get_logger
from ..core.registry import DataSourceType
from .models import ExecuteDirectQueryRequest, GetDirectQueryResourcesRequest


class QueryHandler(Protocol):
    """Serves queries and resource lookups for clients of one connector type."""

    datasource_type: DataSourceType

    def can_handle(self, client: object) -> bool:
        """Return ``True`` when this handler serves ``client``."""

    def execute_query(self, client: Any, request: ExecuteDirectQueryRequest) -> Dict[str, Any]:
        """Run the request's query and return the result payload or an ``{"error": ...}`` payload."""

    def get_resources(self, client: Any, request: GetDirectQueryResourcesRequest) -> Any:
        """Return the requested resource data."""


class BaseQueryHandler:
    """Mixin implementing :meth:`QueryHandler.can_handle` by connector type tag."""

    datasource_type: ClassVar[DataSourceType]

    def can_handle(self, client: object) -> bool:
        return getattr(client, "datasource_type", None) == self.datasource_type


class QueryHandlerRegistry:
    """Ordered collection of :class:`QueryHandler` instances."""

    def __init__(self, handlers: Iterable[QueryHandler] = (), *, logger: Optional[LoggerAdapter] = None) -> None:
        self.logger = logger or get_logger(f"{__name__}.{self.__class__.__name__}")
        self._handlers: List[QueryHandler] = []
        for handler in handlers:
            self.register(handler)

    def register(self, handler: QueryHandler) -> None:
        """Append ``handler``. Earlier registrations win when several handlers match."""

        claimed = getattr(handler, "datasource_type", None)
        if claimed is not None and any(getattr(existing, "datasource_type", None) == claimed for existing in self._handlers):
            self.logger.warning(
                "Multiple query handlers registered for the same connector type; the first registered handler wins",
                extra={"connector": getattr(claimed, "value", claimed), "handler": type(handler).__name__},
            )
        self._handlers.append(handler)

    def get_query_handler(self, client: DataSourceClient | object) -> Optional[QueryHandler]:
        """Return the first handler whose :meth:`can_handle` accepts ``client``, if any."""

        for handler in self._handlers:
            if handler.can_handle(client):
                return handler
        return None

    def __iter__(self) -> Iterator[QueryHandler]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
