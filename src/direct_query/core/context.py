"""
Execution context primitives shared by the CLI and embedding services.

The context bundles what the core needs from its host: resolved settings, the
data source catalogue, a logger factory and the network capability. Passing it
explicitly keeps every component free of global state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Callable, Mapping, Optional, Sequence, TypeVar

from ..config import DirectQuerySettings, load_settings
from ..errors import NetworkAccessDeniedError
from .logging import get_logger as _get_logger
from .registry import DataSourceService

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class NetworkAccess:
    """
    Capability handle granting permission to perform outbound network calls.

    Components that talk to remote backends receive a handle and run their I/O
    through :meth:`run`. A handle created with ``granted=False`` refuses every
    call, which lets hosts sandbox the core without touching process-wide state.
    """

    granted: bool = True
    reason: str = "network access has not been granted to the direct query core"

    def run(self, action: Callable[[], T]) -> T:
        """Invoke ``action`` if the capability is granted."""

        if not self.granted:
            raise NetworkAccessDeniedError(self.reason)
        return action()

    @classmethod
    def denied(cls, reason: Optional[str] = None) -> "NetworkAccess":
        if reason:
            return cls(granted=False, reason=reason)
        return cls(granted=False)


@dataclass(slots=True)
class ExecutionContext:
    """
    Shared execution context across CLI commands and services.

    Attributes
    ----------
    settings:
        Resolved runtime settings.
    datasources:
        Catalogue used to resolve data source names.
    network:
        Network capability handed to query handlers.
    observability_tags:
        Tags attached to every logger created through :meth:`get_logger`.
    """

    settings: DirectQuerySettings
    datasources: DataSourceService
    network: NetworkAccess = field(default_factory=NetworkAccess)
    observability_tags: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def build_default(
        cls,
        *,
        settings: Optional[DirectQuerySettings] = None,
        datasources: Optional[DataSourceService] = None,
        network: Optional[NetworkAccess] = None,
    ) -> "ExecutionContext":
        """
        Construct a context using sensible defaults.

        When ``datasources`` is omitted the catalogue referenced by
        ``settings.catalog_path`` is loaded, or an empty catalogue is used.
        """

        resolved_settings = settings or load_settings()
        if datasources is None:
            if resolved_settings.catalog_path is not None:
                datasources = DataSourceService.from_yaml(resolved_settings.catalog_path)
            else:
                datasources = DataSourceService()
        return cls(
            settings=resolved_settings,
            datasources=datasources,
            network=network or NetworkAccess(),
        )

    def get_logger(self, name: str, *, extra: Optional[Mapping[str, object]] = None) -> LoggerAdapter:
        """Return a logger adapter enriched with the context's observability tags."""

        tags = tuple(self.observability_tags)
        return _get_logger(name, tags=tags if tags else None, extra=extra)
