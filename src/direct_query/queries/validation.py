"""
Request-shape validation applied before a query is dispatched.
"""

from __future__ import annotations

from ..errors import QueryValidationError
from .models import DEFAULT_LANGUAGE, ExecuteDirectQueryRequest

SUPPORTED_LANGUAGES = frozenset({DEFAULT_LANGUAGE})


def validate_request(request: ExecuteDirectQueryRequest) -> None:
    """
    Validate a direct query request.

    Raises
    ------
    QueryValidationError
        When the data source, query or language is missing, the language is
        unsupported, or numeric start/end timestamps are out of order.
        Non-numeric timestamps are left for the query handler to report.
    """

    if not request.datasource:
        raise QueryValidationError("Datasource is required")
    if not request.query:
        raise QueryValidationError("Query is required")
    if not request.language:
        raise QueryValidationError("Language type is required")
    if request.language not in SUPPORTED_LANGUAGES:
        raise QueryValidationError(f"Unsupported language type: {request.language}")

    start, end = request.options.start, request.options.end
    if start is not None and end is not None:
        try:
            start_ts, end_ts = float(start), float(end)
        except ValueError:
            return
        if end_ts <= start_ts:
            raise QueryValidationError("End time must be after start time")
