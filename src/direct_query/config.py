"""
Runtime settings for the direct query core.

Settings are loaded from a TOML document. The lookup order is:

1. Explicit ``DIRECT_QUERY_SETTINGS_PATH`` environment variable.
2. ``.direct_query/settings.toml`` relative to the current working directory.
3. Built-in defaults.

Call :func:`load_settings` to retrieve a :class:`DirectQuerySettings` instance.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_CALL_TIMEOUT = 60.0
_ENV_SETTINGS_PATH = "DIRECT_QUERY_SETTINGS_PATH"


class SettingsError(RuntimeError):
    """Raised when a settings file exists but cannot be used."""


@dataclass(slots=True)
class HttpSettings:
    """Timeouts applied to every protocol client transport, in seconds."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    call_timeout: float = DEFAULT_CALL_TIMEOUT


@dataclass(slots=True)
class DirectQuerySettings:
    """
    Resolved settings consumed by the client factory and executor service.

    Attributes
    ----------
    source_path:
        File the settings were read from, ``None`` when defaults are used.
    datasources_enabled:
        Master switch. When ``False`` the executor refuses every request.
    uri_hosts_deny_list:
        Host glob patterns or CIDR ranges that outbound requests must never reach.
    catalog_path:
        Optional data source catalogue YAML, resolved relative to the settings file.
    http:
        Transport timeouts.
    """

    source_path: Optional[Path] = None
    datasources_enabled: bool = True
    uri_hosts_deny_list: Sequence[str] = field(default_factory=tuple)
    catalog_path: Optional[Path] = None
    http: HttpSettings = field(default_factory=HttpSettings)


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv(_ENV_SETTINGS_PATH)
    if env_override:
        yield Path(env_override).expanduser()
    yield Path.cwd() / ".direct_query" / "settings.toml"


def _positive_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and value > 0:
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return default
        if parsed > 0:
            return parsed
    return default


def _string_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(item.strip() for item in value.split(",") if item.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    raise SettingsError(f"Expected a list of strings, got {type(value).__name__}.")


def settings_from_mapping(raw: Mapping[str, Any], *, source_path: Optional[Path] = None) -> DirectQuerySettings:
    """Build settings from an already parsed TOML mapping."""

    datasources = raw.get("datasources", {})
    if not isinstance(datasources, Mapping):
        datasources = {}
    http = raw.get("http", {})
    if not isinstance(http, Mapping):
        http = {}

    catalog_path: Optional[Path] = None
    catalog = datasources.get("catalog")
    if isinstance(catalog, str) and catalog:
        catalog_path = Path(catalog).expanduser()
        if not catalog_path.is_absolute() and source_path is not None:
            catalog_path = source_path.parent / catalog_path

    return DirectQuerySettings(
        source_path=source_path,
        datasources_enabled=bool(datasources.get("enabled", True)),
        uri_hosts_deny_list=_string_list(datasources.get("uri_hosts_deny_list")),
        catalog_path=catalog_path,
        http=HttpSettings(
            connect_timeout=_positive_float(http.get("connect_timeout"), DEFAULT_CONNECT_TIMEOUT),
            call_timeout=_positive_float(http.get("call_timeout"), DEFAULT_CALL_TIMEOUT),
        ),
    )


def load_settings(path: Optional[Path | str] = None) -> DirectQuerySettings:
    """
    Load settings from ``path`` or from the configured locations.

    An explicit ``path`` that does not exist raises :class:`SettingsError`;
    missing default locations silently fall back to built-in defaults.
    """

    if path is not None:
        location = Path(path).expanduser()
        if not location.is_file():
            raise SettingsError(f"Settings file '{location}' does not exist.")
        return _load_file(location)

    for candidate in _candidate_paths():
        if candidate.is_file():
            return _load_file(candidate)
    return DirectQuerySettings()


def _load_file(location: Path) -> DirectQuerySettings:
    try:
        with location.open("rb") as handle:
            raw: Dict[str, Any] = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"Failed to parse '{location}': {exc}") from exc
    return settings_from_mapping(raw, source_path=location)
