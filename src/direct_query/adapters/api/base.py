"""
Shared HTTP utilities for protocol clients.

The helper provides a thin wrapper over an injected :class:`httpx.Client`: it
keeps calls synchronous, performs exactly one attempt per call, and turns
transport failures, non-2xx statuses and undecodable bodies into the client's
error type with messages callers can show as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, ClassVar, Dict, Mapping, Optional, Sequence, Type

import httpx

from ...core.logging import get_logger
from ...errors import ProtocolClientError

QueryParams = Mapping[str, Any]


def format_param(value: Any) -> Any:
    """Render a parameter value the way the remote APIs expect it."""

    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (list, tuple)):
        return [format_param(item) for item in value]
    return value


def clean_params(params: Optional[QueryParams]) -> Dict[str, Any]:
    """Drop ``None`` values so optional parameters are omitted from the query string."""

    return {key: format_param(value) for key, value in (params or {}).items() if value is not None}


@dataclass(slots=True)
class BaseAPIClient:
    """
    Base synchronous client bound to one backend base URL.

    Parameters
    ----------
    base_url:
        Root URL of the backend. A trailing slash is ignored.
    http_client:
        Transport built by :func:`~direct_query.adapters.transport.build_http_client`.
    logger:
        Optional injected logger. Defaults to a module-scoped structured logger.
    """

    backend_name: ClassVar[str] = "Backend"
    error_class: ClassVar[Type[ProtocolClientError]] = ProtocolClientError

    base_url: str
    http_client: httpx.Client = field(repr=False)
    logger: Optional[LoggerAdapter] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.base_url = str(self.base_url).rstrip("/")
        if self.logger is None:
            self.logger = get_logger(
                f"{self.__class__.__module__}.{self.__class__.__name__}",
                extra={"backend_url": self.base_url},
            )

    def close(self) -> None:
        self.http_client.close()

    def __enter__(self) -> "BaseAPIClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _get(self, path: str, *, params: Optional[QueryParams] = None) -> httpx.Response:
        url = self._url(path)
        self.logger.debug("HTTP request", extra={"method": "GET", "url": url, "params": clean_params(params) or None})
        try:
            response = self.http_client.get(url, params=clean_params(params))
        except httpx.HTTPError as exc:
            self.logger.error("HTTP error during request", extra={"method": "GET", "url": url, "error": str(exc)})
            raise self.error_class(f"Failed to reach {self.backend_name} at {url}: {exc}") from exc
        self.logger.debug("HTTP response", extra={"status_code": response.status_code, "url": url})
        return response

    def _read_json(self, response: httpx.Response) -> Any:
        """
        Validate the HTTP status, then decode the body.

        The status is checked first so an error response with an empty or
        non-JSON body still reports its status code.
        """

        if not response.is_success:
            body = response.text or "No response body"
            self.logger.error(
                "Request unsuccessful",
                extra={"status_code": response.status_code, "url": str(response.request.url), "body": body},
            )
            raise self.error_class(f"Request to {self.backend_name} is Unsuccessful with code: {response.status_code}. Error details: {body}")

        try:
            return response.json()
        except ValueError as exc:
            self.logger.error("Failed to parse response as JSON", extra={"url": str(response.request.url)})
            raise self.error_class(f"{self.backend_name} returned unexpected body, please verify your {self.backend_name.lower()} server setup.") from exc

    def _get_json(self, path: str, *, params: Optional[QueryParams] = None) -> Any:
        return self._read_json(self._get(path, params=params))


def expect_list(payload: Any, *, context: str, error_class: Type[ProtocolClientError]) -> Sequence[Any]:
    if not isinstance(payload, list):
        raise error_class(f"Unexpected payload for {context}: expected a list, got {type(payload).__name__}.")
    return payload
