"""Cooperative cancellation for resolution runs.

A CancellationToken is created by the caller and passed explicitly through
every call of the walker. It is checked before each role assignment and
before each remote expansion; once cancelled the run aborts with
ResolutionCancelled and returns no partial records.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .exceptions import ResolutionCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-way cancellation flag shared between a caller and a run."""

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()
            logger.info("Cancellation requested%s", f": {reason}" if reason else "")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ResolutionCancelled(self._reason or ResolutionCancelled.message)

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


__all__ = ["CancellationToken"]
