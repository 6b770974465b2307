"""Error taxonomy for the explorer.

Only :class:`FetchError` is ever shown to the user.  Stale responses and
degenerate axis domains are handled internally and have no exception type.
"""

from __future__ import annotations


class ExplorerError(Exception):
    """Base class for explorer errors."""


class FetchError(ExplorerError):
    """A request to the clustering/recommendation service failed.

    Covers transport errors, non-2xx responses, malformed payloads and
    requests rejected before sending (e.g. an empty track list).
    """

    def __init__(self, operation: str, message: str, status_code: int | None = None) -> None:
        self.operation = operation
        self.message = message
        self.status_code = status_code
        super().__init__(f"{operation}: {message}")


class InvalidParameterError(ExplorerError, ValueError):
    """Recompute parameters outside their allowed range."""
