"""
Data source catalogue declarations and helpers.

The catalogue stands in for the external data source service: it owns
:class:`DataSourceMetadata` entries (name, connector type, connection
properties) and answers lookups by name. The core only ever reads from it.

Entries are loaded from YAML documents so connection profiles can be kept next
to deployment configuration::

    - name: my_prometheus
      connector: prometheus
      description: Production metrics
      properties:
        prometheus.uri: https://prometheus.example.com
        prometheus.auth.type: basicauth
        prometheus.auth.username: admin
        prometheus.auth.password: secret
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, MutableMapping, Optional

import yaml

from ..errors import DataSourceNotFoundError


class CatalogLoadError(RuntimeError):
    """Raised when a catalogue YAML file cannot be parsed or validated."""


class DataSourceType(str, Enum):
    """Connector types a data source may declare."""

    PROMETHEUS = "PROMETHEUS"
    OPENSEARCH = "OPENSEARCH"
    SPARK = "SPARK"
    S3GLUE = "S3GLUE"
    SECURITY_LAKE = "SECURITY_LAKE"

    @classmethod
    def from_string(cls, value: str) -> "DataSourceType":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise CatalogLoadError(f"Unknown connector type '{value}'. Expected one of: {', '.join(item.value for item in cls)}.") from None


@dataclass(slots=True, frozen=True)
class DataSourceMetadata:
    """
    Stored connection profile of a single data source.

    Parameters
    ----------
    name:
        Unique data source name used by callers.
    connector:
        Protocol the data source speaks.
    properties:
        Connection properties such as ``prometheus.uri`` and ``prometheus.auth.*``.
    description:
        Optional human readable summary.
    """

    name: str
    connector: DataSourceType
    properties: Mapping[str, str] = field(default_factory=dict)
    description: str = ""

    def redacted_properties(self) -> Dict[str, str]:
        """Properties with credential values masked, safe for display."""

        return {key: ("******" if _is_secret_key(key) else value) for key, value in self.properties.items()}


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return lowered.endswith(("password", "secret_key", "access_key"))


class DataSourceService:
    """In-memory catalogue of :class:`DataSourceMetadata` entries."""

    def __init__(self) -> None:
        self._entries: MutableMapping[str, DataSourceMetadata] = {}

    def register(self, metadata: DataSourceMetadata) -> None:
        """Register or overwrite a data source."""

        if not metadata.name:
            raise CatalogLoadError("Data source name must not be empty.")
        self._entries[metadata.name] = metadata

    def unregister(self, name: str) -> None:
        self._entries.pop(name, None)

    def datasource_exists(self, name: str) -> bool:
        return name in self._entries

    def get_datasource_metadata(self, name: str) -> DataSourceMetadata:
        """Return metadata for ``name`` or raise :class:`DataSourceNotFoundError`."""

        metadata = self._entries.get(name)
        if metadata is None:
            raise DataSourceNotFoundError(f"Data source does not exist: {name}")
        return metadata

    def list(self, *, connector: Optional[DataSourceType] = None) -> List[DataSourceMetadata]:
        items = self._entries.values()
        if connector:
            return [item for item in items if item.connector == connector]
        return list(items)

    def __iter__(self) -> Iterator[DataSourceMetadata]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "DataSourceService":
        """Load data sources from a YAML document."""

        location = Path(path)
        if not location.exists():
            raise CatalogLoadError(f"Catalog file '{location}' does not exist.")

        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise CatalogLoadError(f"Failed to parse '{location}': {exc}") from exc

        if payload is None:
            payload = []
        if not isinstance(payload, list):
            raise CatalogLoadError(f"Catalog file '{location}' must contain a list of data sources.")

        service = cls()
        for entry in payload:
            metadata = _metadata_from_payload(entry, origin=location)
            if service.datasource_exists(metadata.name):
                raise CatalogLoadError(f"Duplicate data source '{metadata.name}' in '{location}'.")
            service.register(metadata)
        return service


def _metadata_from_payload(entry: object, *, origin: Path) -> DataSourceMetadata:
    """Convert a YAML mapping into a metadata instance."""

    if not isinstance(entry, dict):
        raise CatalogLoadError(f"Invalid entry in '{origin}': expected mapping, got {type(entry)!r}")

    try:
        name = str(entry["name"]).strip()
        connector = DataSourceType.from_string(str(entry["connector"]))
    except KeyError as exc:
        raise CatalogLoadError(f"Missing required key {exc!s} in '{origin}'.") from exc

    raw_properties = entry.get("properties") or {}
    if not isinstance(raw_properties, dict):
        raise CatalogLoadError(f"Properties of data source '{name}' in '{origin}' must be a mapping.")
    # YAML turns bare numbers and booleans into non-strings; connection properties are always text.
    properties = {str(key): str(value) for key, value in raw_properties.items() if value is not None}

    return DataSourceMetadata(
        name=name,
        connector=connector,
        properties=properties,
        description=str(entry.get("description") or ""),
    )
