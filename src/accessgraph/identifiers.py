"""Decoding of claims-encoded directory group identifiers.

Site role assignments reference directory groups by their claims login,
e.g. ``c:0t.c|tenant|<guid>`` for security groups or
``c:0o.c|federateddirectoryclaimprovider|<guid>_o`` for the owners of a
Microsoft 365 group. The directory API wants the bare object id, and the
``_o`` marker decides whether owners only or owners and members hold the
grant. Identifiers that match neither convention are already bare and are
used unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

TENANT_CLAIM_PREFIX = "c:0t.c|tenant|"
FEDERATED_CLAIM_PREFIX = "c:0o.c|federateddirectoryclaimprovider|"
OWNERS_MARKER = "_o"

# Longest first so the federated prefix is never cut short by a partial match
CLAIM_PREFIXES: tuple[str, ...] = tuple(
    sorted((TENANT_CLAIM_PREFIX, FEDERATED_CLAIM_PREFIX), key=len, reverse=True)
)


class FetchMode(str, Enum):
    """Which part of a directory group holds the grant."""

    OWNERS_AND_MEMBERS = "owners_and_members"
    OWNERS = "owners"


@dataclass(frozen=True)
class DirectoryGroupId:
    """A decoded directory group identifier."""

    object_id: str
    mode: FetchMode = FetchMode.OWNERS_AND_MEMBERS

    @property
    def owners_only(self) -> bool:
        return self.mode is FetchMode.OWNERS

    @property
    def canonical(self) -> str:
        """Stable identity: owners-only grants are a different principal."""
        if self.owners_only:
            return f"{self.object_id}{OWNERS_MARKER}"
        return self.object_id


def strip_claims_prefix(raw: str) -> str:
    """Drop everything up to and including a known claims prefix."""
    identifier = raw
    for prefix in CLAIM_PREFIXES:
        if prefix in identifier:
            identifier = identifier[identifier.index(prefix) + len(prefix):]
    return identifier


def decode_directory_group_id(raw: str) -> DirectoryGroupId:
    """Decode a raw directory group identifier.

    Example::

        >>> decode_directory_group_id("c:0t.c|tenant|abc123_o")
        DirectoryGroupId(object_id='abc123', mode=<FetchMode.OWNERS: 'owners'>)
        >>> decode_directory_group_id("abc123").mode
        <FetchMode.OWNERS_AND_MEMBERS: 'owners_and_members'>
    """
    identifier = strip_claims_prefix(raw)
    if OWNERS_MARKER in identifier:
        return DirectoryGroupId(
            object_id=identifier[: identifier.index(OWNERS_MARKER)],
            mode=FetchMode.OWNERS,
        )
    return DirectoryGroupId(object_id=identifier)


__all__ = [
    "CLAIM_PREFIXES",
    "DirectoryGroupId",
    "FEDERATED_CLAIM_PREFIX",
    "FetchMode",
    "OWNERS_MARKER",
    "TENANT_CLAIM_PREFIX",
    "decode_directory_group_id",
    "strip_claims_prefix",
]
