"""Collaborator contracts consumed by the resolution engine.

The engine never talks to the network itself. Callers inject sources for
resource-group membership and directory-group membership, plus a progress
sink. Concrete HTTP implementations live in ``accessgraph.clients``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .models import DirectoryObject, ResourceGroupMember


class ResourceGroupSource(ABC):
    """Membership of groups defined on a single resource."""

    @abstractmethod
    async def fetch_members(self, resource_scope: str, group_name: str) -> list[ResourceGroupMember]:
        """Return all members of ``group_name`` on ``resource_scope``.

        Raises on network, auth or not-found failures.
        """
        raise NotImplementedError


class DirectoryGroupSource(ABC):
    """Tenant-wide directory groups."""

    @abstractmethod
    async def fetch_owners_and_members(self, directory_id: str) -> list[DirectoryObject]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_owners(self, directory_id: str) -> list[DirectoryObject]:
        raise NotImplementedError


class ProgressSink(ABC):
    """Fire-and-forget observability sink."""

    @abstractmethod
    def log_progress(self, component: str, message: str) -> None:
        pass


class LoggerProgressSink(ProgressSink):
    """Default sink: forwards progress to the stdlib logger at DEBUG."""

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter | None = None, level: int = logging.DEBUG):
        self._logger = logger or logging.getLogger("accessgraph.progress")
        self._level = level

    def log_progress(self, component: str, message: str) -> None:
        self._logger.log(self._level, message, extra={"component": component})


__all__ = [
    "DirectoryGroupSource",
    "LoggerProgressSink",
    "ProgressSink",
    "ResourceGroupSource",
]
