"""Permission graph walker.

Turns a resource's direct role assignments into flattened PermissionRecord
rows, expanding every group principal down to its users:

    RoleAssignment ──► permission levels ──► User?          ──► record
                                         ──► Everyone?      ──► "All Users" record
                                         ──► group          ──► _expand()

    _expand(group, path)
        cycle on path?      ──► "Cycle detected" record
        cache.reserve(group, cancellation)
            cache.lookup    ──► hit: replay entries
            expander.expand ──► miss: entries stored (errors too)
        for entry: users / sentinel / error record, or recurse into nested group

Expansion is depth-first and sequential within one resolution so later
siblings see cache entries written by earlier ones. Records are rebuilt from
the *current* access path on every replay; the cache only keeps each group's
own expansion.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Optional

from .cache import KnownGroupCache
from .cancellation import CancellationToken
from .expansion import ExpanderRegistry, ExpansionFailure, ExpansionOutcome
from .interfaces import (
    DirectoryGroupSource,
    LoggerProgressSink,
    ProgressSink,
    ResourceGroupSource,
)
from .logging import get_resolution_logger
from .models import (
    SECURITY_GROUP_LABEL,
    AccessPath,
    CacheKey,
    KnownGroupEntry,
    PermissionRecord,
    PrincipalKind,
    PrincipalRef,
    RoleAssignment,
)
from .permissions import (
    ALL_USERS,
    CYCLE_DETECTED,
    DIRECT_PERMISSIONS,
    USER_ACCOUNT,
    is_system_principal,
    resolve_permission_levels,
)

logger = logging.getLogger(__name__)


class RecordAccumulator:
    """Collects the records of one resolution run."""

    def __init__(self) -> None:
        self._records: list[PermissionRecord] = []

    def add(self, record: PermissionRecord) -> None:
        self._records.append(record)

    def drain(self) -> list[PermissionRecord]:
        """Return everything collected so far and start empty."""
        records, self._records = self._records, []
        return records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PermissionRecord]:
        return iter(self._records)


@dataclass
class _Run:
    """State threaded through one resolution call."""

    resource_scope: str
    cache: KnownGroupCache
    cancellation: CancellationToken
    records: RecordAccumulator = field(default_factory=RecordAccumulator)
    # Groups currently being walked on the active recursion path
    active: set[CacheKey] = field(default_factory=set)
    expansions: int = 0


class PermissionGraphWalker:
    """Resolve effective permissions of resources down to users.

    Args:
        expanders: Registry with one expander per group kind.
        cache: Known-group cache for the scan. Defaults to a fresh per-run
            ``KnownGroupCache``; pass a ``SharedKnownGroupCache`` when the
            walker resolves several resources concurrently.
        progress: Observability sink, defaults to the stdlib logger.
        scan_id: Optional scan identifier attached to log records.

    Example::

        walker = PermissionGraphWalker.from_sources(site_client, graph_client)
        records = await walker.resolve_resource(site_url, assignments)
    """

    def __init__(
        self,
        expanders: ExpanderRegistry,
        *,
        cache: Optional[KnownGroupCache] = None,
        progress: Optional[ProgressSink] = None,
        scan_id: Optional[str] = None,
    ) -> None:
        self._expanders = expanders
        self.cache = cache if cache is not None else KnownGroupCache()
        self._progress = progress or LoggerProgressSink()
        self.scan_id = scan_id

    @classmethod
    def from_sources(
        cls,
        resource_groups: ResourceGroupSource,
        directory_groups: DirectoryGroupSource,
        **kwargs,
    ) -> PermissionGraphWalker:
        return cls(ExpanderRegistry.from_sources(resource_groups, directory_groups), **kwargs)

    # =========================================
    # Entry points
    # =========================================

    async def resolve_resource(
        self,
        resource_scope: str,
        role_assignments: Iterable[RoleAssignment],
        *,
        cache: Optional[KnownGroupCache] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[PermissionRecord]:
        """Flatten the role assignments of one resource into records.

        Args:
            resource_scope: The resource (site URL) being resolved.
            role_assignments: Direct grants on the resource.
            cache: Overrides the walker's cache for this call.
            cancellation: Token checked before each assignment and before
                each remote expansion.

        Returns:
            Records in assignment order, depth-first within each group.

        Raises:
            ResolutionCancelled: The token was cancelled; no records are
                returned for this resource.
        """
        run = self._start_run(resource_scope, cache, cancellation)
        self._log("resolve_resource", f"Start getting permissions for resource '{resource_scope}'")

        for assignment in role_assignments:
            run.cancellation.raise_if_cancelled()
            await self._resolve_assignment(assignment, run)

        return self._finish_run(run)

    async def resolve_directory_groups(
        self,
        resource_scope: str,
        groups: Iterable[PrincipalRef],
        *,
        access_type: str,
        permission_levels: str,
        cache: Optional[KnownGroupCache] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[PermissionRecord]:
        """Resolve a bare list of directory groups under one access type.

        Used when the grant does not come from a role assignment, e.g.
        groups a sharing link was issued to.
        """
        run = self._start_run(resource_scope, cache, cancellation)
        self._log("resolve_directory_groups", f"Start getting users from {access_type}")

        for group in groups:
            run.cancellation.raise_if_cancelled()
            group = self._scoped(group, run)
            if is_system_principal(group.display_name):
                run.records.add(self._sentinel_record(access_type, group.display_name, permission_levels))
                continue
            await self._expand(group, AccessPath(), access_type, permission_levels, run)

        return self._finish_run(run)

    # =========================================
    # Resolution
    # =========================================

    async def _resolve_assignment(self, assignment: RoleAssignment, run: _Run) -> None:
        principal = self._scoped(assignment.principal, run)
        self._log(
            "resolve_assignment",
            f"Getting permissions for {principal.kind.value} '{principal.display_name}'",
        )

        permission_levels = resolve_permission_levels(assignment.role_definition_names)
        if not permission_levels:
            self._log("resolve_assignment", "No reportable permission levels, skipping")
            return

        if is_system_principal(principal.display_name):
            run.records.add(self._sentinel_record(DIRECT_PERMISSIONS, principal.display_name, permission_levels))
            return

        if principal.kind is PrincipalKind.USER:
            run.records.add(
                PermissionRecord(
                    access_type=DIRECT_PERMISSIONS,
                    account_type=USER_ACCOUNT,
                    users=principal.login_or_id,
                    permission_levels=permission_levels,
                )
            )
            return

        if principal.kind is PrincipalKind.RESOURCE_GROUP:
            access_type = principal.access_type()
        else:
            access_type = DIRECT_PERMISSIONS
        await self._expand(principal, AccessPath(), access_type, permission_levels, run)

    async def _expand(
        self,
        principal: PrincipalRef,
        path: AccessPath,
        access_type: str,
        permission_levels: str,
        run: _Run,
    ) -> None:
        run.cancellation.raise_if_cancelled()

        if principal.kind is PrincipalKind.DIRECTORY_GROUP:
            path = path.descend(principal.breadcrumb())

        key = run.cache.key_for(principal)
        if key in run.active:
            logger.warning(
                "Membership cycle: %s '%s' reached again via '%s'",
                principal.kind.value,
                principal.display_name,
                path.label().strip(),
            )
            run.records.add(
                PermissionRecord(
                    access_type=access_type,
                    account_type=path.label(),
                    users="",
                    permission_levels=permission_levels,
                    remarks=f"{CYCLE_DETECTED}: {SECURITY_GROUP_LABEL} '{principal.display_name}' "
                    "is already being expanded on this access path",
                )
            )
            return

        entries = await self._entries_for(principal, path, permission_levels, run)

        run.active.add(key)
        try:
            for entry in entries:
                if entry.is_nested:
                    await self._expand(entry.member, path, access_type, permission_levels, run)
                else:
                    run.records.add(self._record_for(entry, path, access_type, permission_levels))
        finally:
            run.active.discard(key)

    async def _entries_for(
        self,
        principal: PrincipalRef,
        path: AccessPath,
        permission_levels: str,
        run: _Run,
    ) -> tuple[KnownGroupEntry, ...]:
        component = f"expand.{principal.kind.value}"
        async with run.cache.reserve(principal, run.cancellation):
            cached = await run.cache.lookup(principal)
            if cached is not None:
                self._log(component, f"'{principal.display_name}' found in known groups")
                return cached

            run.cancellation.raise_if_cancelled()
            self._log(component, f"Start getting users from {principal.kind.value} '{principal.display_name}'")
            outcome = await self._expanders.expander_for(principal.kind).expand(principal)
            run.expansions += 1

            entries = self._entries_from(principal, path, permission_levels, outcome)
            return await run.cache.store(principal, entries)

    # =========================================
    # Entries and records
    # =========================================

    @staticmethod
    def _entries_from(
        principal: PrincipalRef,
        path: AccessPath,
        permission_levels: str,
        outcome: ExpansionOutcome,
    ) -> list[KnownGroupEntry]:
        common = {"principal": principal, "access_path": path, "permission_levels": permission_levels}

        if isinstance(outcome, ExpansionFailure):
            return [KnownGroupEntry(**common, error_message=outcome.message or outcome.error_type)]

        entries: list[KnownGroupEntry] = []
        if outcome.direct_users:
            entries.append(KnownGroupEntry(**common, resolved_users=" ".join(outcome.direct_users)))
        for nested in outcome.nested_groups:
            if is_system_principal(nested.display_name):
                entries.append(KnownGroupEntry(**common, resolved_users=ALL_USERS, member=nested))
            else:
                entries.append(KnownGroupEntry(**common, member=nested))
        return entries

    @staticmethod
    def _record_for(
        entry: KnownGroupEntry,
        path: AccessPath,
        access_type: str,
        permission_levels: str,
    ) -> PermissionRecord:
        if entry.is_error:
            return PermissionRecord(
                access_type=access_type,
                account_type=path.label(),
                users="",
                permission_levels=permission_levels,
                remarks=entry.error_message or "",
            )
        leaf = entry.member.display_name if entry.member is not None else USER_ACCOUNT
        return PermissionRecord(
            access_type=access_type,
            account_type=path.label(leaf),
            users=entry.resolved_users or "",
            permission_levels=permission_levels,
        )

    @staticmethod
    def _sentinel_record(access_type: str, display_name: str, permission_levels: str) -> PermissionRecord:
        return PermissionRecord(
            access_type=access_type,
            account_type=display_name,
            users=ALL_USERS,
            permission_levels=permission_levels,
        )

    # =========================================
    # Run bookkeeping
    # =========================================

    def _start_run(
        self,
        resource_scope: str,
        cache: Optional[KnownGroupCache],
        cancellation: Optional[CancellationToken],
    ) -> _Run:
        return _Run(
            resource_scope=resource_scope,
            cache=cache if cache is not None else self.cache,
            cancellation=cancellation or CancellationToken(),
        )

    @staticmethod
    def _scoped(principal: PrincipalRef, run: _Run) -> PrincipalRef:
        """Bind a principal given without a scope to the resource being resolved."""
        if principal.resource_scope:
            return principal
        return principal.model_copy(update={"resource_scope": run.resource_scope})

    def _finish_run(self, run: _Run) -> list[PermissionRecord]:
        records = run.records.drain()
        get_resolution_logger(__name__, resource_scope=run.resource_scope, scan_id=self.scan_id).info(
            "Resolved %d permission records (%d remote expansions)",
            len(records),
            run.expansions,
        )
        return records

    def _log(self, component: str, message: str) -> None:
        self._progress.log_progress(f"{type(self).__name__}.{component}", message)


__all__ = ["PermissionGraphWalker", "RecordAccumulator"]
