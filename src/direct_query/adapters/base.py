"""
Base protocols for data source protocol clients.

Clients are intentionally narrow in scope: one method per backend endpoint and
a lightweight connectivity check. Request validation, dispatch and payload
formatting are handled by the query handlers so clients stay reusable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from ..core.registry import DataSourceType


@dataclass(slots=True)
class VerificationResult:
    """
    Structured response returned by client verification routines.

    Attributes
    ----------
    success:
        Indicates whether the verification succeeded.
    message:
        Human-readable summary.
    details:
        Optional structured metadata such as sample values returned by the backend.
    """

    success: bool
    message: str
    details: Optional[Mapping[str, object]] = None


class DataSourceClient(Protocol):
    """Protocol implemented by all protocol clients."""

    @property
    def datasource_type(self) -> DataSourceType:
        """Connector type served by this client, used for handler dispatch."""

    def verify(self) -> VerificationResult:
        """Perform a lightweight connectivity check."""

    def close(self) -> None:
        """Release the underlying transport."""
