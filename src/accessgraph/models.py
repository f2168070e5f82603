"""Data model for permission resolution.

Pydantic models for the inputs a caller hands to the walker (role
assignments and the principals they reference), the shapes returned by
the remote collaborators, the known-group cache entries, and the flattened
PermissionRecord rows the walker produces.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .identifiers import decode_directory_group_id

SECURITY_GROUP_LABEL = "Security Group"
RESOURCE_GROUP_LABEL = "SharePoint Group"


class PrincipalKind(str, Enum):
    """Closed set of principal kinds a role assignment can reference."""

    USER = "User"
    RESOURCE_GROUP = "SharePointGroup"
    DIRECTORY_GROUP = "SecurityGroup"


class CacheKey(NamedTuple):
    """Identity of a principal for caching and cycle detection."""

    kind: PrincipalKind
    identifier: str
    scope: Optional[str]


class PrincipalRef(BaseModel):
    """A principal as encountered on a resource.

    ``resource_scope`` is the resource the principal was met in. Resource
    groups are scoped per resource, directory groups tenant-wide.
    """

    kind: PrincipalKind
    display_name: str = ""
    login_or_id: str = ""
    resource_scope: str = ""

    model_config = {"frozen": True}

    @property
    def is_group(self) -> bool:
        return self.kind is not PrincipalKind.USER

    @property
    def identity(self) -> CacheKey:
        identifier = self.login_or_id or self.display_name
        if self.kind is PrincipalKind.DIRECTORY_GROUP:
            return CacheKey(self.kind, decode_directory_group_id(identifier).canonical, None)
        return CacheKey(self.kind, identifier, self.resource_scope)

    def breadcrumb(self) -> str:
        """Access path segment for a directory group."""
        return f"{SECURITY_GROUP_LABEL} '{self.display_name}' holds "

    def access_type(self) -> str:
        """Access type label for a resource group grant."""
        return f"{RESOURCE_GROUP_LABEL} '{self.display_name}'"


class RoleAssignment(BaseModel):
    """One direct grant of permission levels to one principal on a resource."""

    resource_scope: str
    principal: PrincipalRef
    role_definition_names: tuple[str, ...] = ()

    model_config = {"frozen": True}


class AccessPath(BaseModel):
    """Chain of directory groups traversed to reach a user.

    Immutable: ``descend`` returns a new path so sibling branches never
    share state.
    """

    segments: tuple[str, ...] = ()

    model_config = {"frozen": True}

    def descend(self, segment: str) -> AccessPath:
        return AccessPath(segments=self.segments + (segment,))

    def label(self, leaf: str = "") -> str:
        return "".join(self.segments) + leaf

    def __len__(self) -> int:
        return len(self.segments)


class KnownGroupEntry(BaseModel):
    """One cached outcome of expanding a group.

    Exactly one of these shapes:
    - users entry: ``resolved_users`` set, ``member`` empty;
    - sentinel entry: ``resolved_users`` = "All Users", ``member`` is the
      system principal found inside the group;
    - nested entry: ``member`` is a nested directory group to recurse into;
    - error entry: ``error_message`` set, nothing else.

    ``access_path`` and ``permission_levels`` record where the group was
    first resolved; replays substitute the current values.
    """

    principal: PrincipalRef
    access_path: AccessPath = Field(default_factory=AccessPath)
    permission_levels: str = ""
    resolved_users: Optional[str] = None
    error_message: Optional[str] = None
    member: Optional[PrincipalRef] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_outcome(self) -> KnownGroupEntry:
        if self.error_message is not None:
            if self.resolved_users is not None:
                raise ValueError("error entry cannot carry resolved users")
            if self.member is not None:
                raise ValueError("error entry cannot carry a member")
        elif self.resolved_users is None and self.member is None:
            raise ValueError("entry needs resolved_users, member or error_message")
        return self

    @property
    def is_error(self) -> bool:
        return self.error_message is not None

    @property
    def is_nested(self) -> bool:
        return self.member is not None and self.resolved_users is None


class PermissionRecord(BaseModel):
    """A flattened "who can do what, through which chain" row."""

    access_type: str
    account_type: str
    users: str
    permission_levels: str
    remarks: str = ""

    model_config = {"frozen": True}


# ---- Collaborator payloads --------------------------------------------------


class ResourceGroupMember(BaseModel):
    """A member of a resource-local group as returned by the site."""

    display_name: str = ""
    login_or_id: str = ""
    principal_kind: PrincipalKind
    directory_id: str = ""
    user_principal_name: str = ""

    @property
    def upn(self) -> str:
        return self.user_principal_name or self.login_or_id


class DirectoryObjectKind(str, Enum):
    USER = "user"
    SECURITY_GROUP = "SecurityGroup"
    OTHER = "other"


class DirectoryObject(BaseModel):
    """An owner or member of a directory group."""

    id: str
    display_name: str = ""
    kind: DirectoryObjectKind = DirectoryObjectKind.OTHER
    user_principal_name: str = ""

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> DirectoryObjectKind:
        """Unknown directory object types (devices, service principals) map to OTHER."""
        if isinstance(v, DirectoryObjectKind):
            return v
        try:
            return DirectoryObjectKind(v)
        except ValueError:
            return DirectoryObjectKind.OTHER


__all__ = [
    "AccessPath",
    "CacheKey",
    "DirectoryObject",
    "DirectoryObjectKind",
    "KnownGroupEntry",
    "PermissionRecord",
    "PrincipalKind",
    "PrincipalRef",
    "RESOURCE_GROUP_LABEL",
    "ResourceGroupMember",
    "RoleAssignment",
    "SECURITY_GROUP_LABEL",
]
