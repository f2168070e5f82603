"""Group expanders: one remote call turns a group into users and subgroups.

Two variants share the ``expand`` contract:

- ``ResourceGroupExpander`` reads a resource-local group from the site.
- ``DirectoryGroupExpander`` reads a directory group's owners (and members)
  after decoding its claims identifier.

Remote failures never escape ``expand``; they come back as
``ExpansionFailure`` so the walker can emit an error row and keep going.
Cancellation always escapes.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Union

from ..exceptions import ResolutionCancelled
from ..identifiers import decode_directory_group_id
from ..interfaces import DirectoryGroupSource, ResourceGroupSource
from ..logging import safe_log_value
from ..models import DirectoryObjectKind, PrincipalKind, PrincipalRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpansionResult:
    """Successful expansion of one group."""

    direct_users: tuple[str, ...] = ()
    nested_groups: tuple[PrincipalRef, ...] = ()


@dataclass(frozen=True)
class ExpansionFailure:
    """A remote call failed; ``message`` ends up in the record remarks."""

    message: str
    error_type: str = field(default="", compare=False)


ExpansionOutcome = Union[ExpansionResult, ExpansionFailure]


class GroupExpander(ABC):
    """Resolve one group principal into member users and nested groups."""

    kind: PrincipalKind

    async def expand(self, principal: PrincipalRef) -> ExpansionOutcome:
        try:
            return await self._expand(principal)
        except (ResolutionCancelled, asyncio.CancelledError):
            raise
        except Exception as e:
            logger.warning(
                "Expansion of %s '%s' failed: %s",
                principal.kind.value,
                principal.display_name,
                safe_log_value(e),
            )
            return ExpansionFailure(message=str(e), error_type=type(e).__name__)

    @abstractmethod
    async def _expand(self, principal: PrincipalRef) -> ExpansionResult:
        raise NotImplementedError


class ResourceGroupExpander(GroupExpander):
    """Expand a resource-local group through its site."""

    kind = PrincipalKind.RESOURCE_GROUP

    def __init__(self, source: ResourceGroupSource):
        self._source = source

    async def _expand(self, principal: PrincipalRef) -> ExpansionResult:
        group_name = principal.display_name or principal.login_or_id
        members = await self._source.fetch_members(principal.resource_scope, group_name)

        users: list[str] = []
        nested: list[PrincipalRef] = []
        for member in members:
            if member.principal_kind is PrincipalKind.USER:
                if member.upn:
                    users.append(member.upn)
            elif member.principal_kind is PrincipalKind.DIRECTORY_GROUP:
                nested.append(
                    PrincipalRef(
                        kind=PrincipalKind.DIRECTORY_GROUP,
                        display_name=member.display_name,
                        login_or_id=member.directory_id or member.login_or_id,
                        resource_scope=principal.resource_scope,
                    )
                )
            else:
                # Resource groups cannot contain resource groups
                logger.debug(
                    "Ignoring %s member '%s' of group '%s'",
                    member.principal_kind.value,
                    member.display_name,
                    group_name,
                )

        return ExpansionResult(direct_users=tuple(users), nested_groups=tuple(nested))


class DirectoryGroupExpander(GroupExpander):
    """Expand a directory group, owners only when the claim says so."""

    kind = PrincipalKind.DIRECTORY_GROUP

    def __init__(self, source: DirectoryGroupSource):
        self._source = source

    async def _expand(self, principal: PrincipalRef) -> ExpansionResult:
        group_id = decode_directory_group_id(principal.login_or_id or principal.display_name)
        if group_id.owners_only:
            objects = await self._source.fetch_owners(group_id.object_id)
        else:
            objects = await self._source.fetch_owners_and_members(group_id.object_id)

        users: list[str] = []
        nested: list[PrincipalRef] = []
        for obj in objects:
            if obj.kind is DirectoryObjectKind.USER:
                users.append(obj.user_principal_name or obj.id)
            elif obj.kind is DirectoryObjectKind.SECURITY_GROUP:
                nested.append(
                    PrincipalRef(
                        kind=PrincipalKind.DIRECTORY_GROUP,
                        display_name=obj.display_name,
                        login_or_id=obj.id,
                        resource_scope=principal.resource_scope,
                    )
                )

        return ExpansionResult(direct_users=tuple(users), nested_groups=tuple(nested))


class ExpanderRegistry:
    """Maps a principal kind to the expander that can resolve it."""

    def __init__(self, *expanders: GroupExpander) -> None:
        self._expanders: dict[PrincipalKind, GroupExpander] = {}
        for expander in expanders:
            self.register(expander)

    def register(self, expander: GroupExpander) -> None:
        self._expanders[expander.kind] = expander

    def expander_for(self, kind: PrincipalKind) -> GroupExpander:
        try:
            return self._expanders[kind]
        except KeyError:
            raise LookupError(f"No expander registered for principal kind {kind.value!r}") from None

    @classmethod
    def from_sources(
        cls,
        resource_groups: ResourceGroupSource,
        directory_groups: DirectoryGroupSource,
    ) -> ExpanderRegistry:
        return cls(
            ResourceGroupExpander(resource_groups),
            DirectoryGroupExpander(directory_groups),
        )


__all__ = [
    "DirectoryGroupExpander",
    "ExpanderRegistry",
    "ExpansionFailure",
    "ExpansionOutcome",
    "ExpansionResult",
    "GroupExpander",
    "ResourceGroupExpander",
]
