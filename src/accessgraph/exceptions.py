"""Exception hierarchy for accessgraph.

All errors raised by the library inherit from AccessGraphError. Each class
carries a stable error code so callers (report jobs, automation scripts) can
map failures without matching on message text.

Any exception a collaborator raises while expanding a group is converted
into an error record for that group, whatever its type. Only these leave a
resolution run:
- ResolutionCancelled, when the caller's CancellationToken fires;
- asyncio.CancelledError, when the surrounding task is cancelled;
- CacheError, when a shared cache backend cannot be reached.

Usage:
    from accessgraph.exceptions import AccessGraphError, TransportError

    try:
        members = await source.fetch_members(site_url, "Editors")
    except TransportError as e:
        logger.warning("[%s] %s", e.code, e.message)
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "AccessGraphError",
    "ConfigurationError",
    "TransportError",
    "ResolutionCancelled",
    "CacheError",
]


# ---- Exception Hierarchy ----------------------------------------------------


class AccessGraphError(Exception):
    """Base exception for accessgraph.

    Attributes:
        code: Stable error code string (e.g. "TRANSPORT_ERROR").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(AccessGraphError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class TransportError(AccessGraphError):
    """A remote membership call failed (network, auth, not found).

    ``details["status_code"]`` holds the HTTP status when one was received.
    """

    code: str = "TRANSPORT_ERROR"
    message: str = "Remote call failed"

    @property
    def status_code(self) -> int | None:
        return self.details.get("status_code")


class ResolutionCancelled(AccessGraphError):
    """The caller cancelled the resolution run.

    Never converted into an error record; always propagates to the caller.
    """

    code: str = "CANCELLED"
    message: str = "Resolution cancelled"


class CacheError(AccessGraphError):
    """Known-group cache backend failure."""

    code: str = "CACHE_ERROR"
