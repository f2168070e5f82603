"""accessgraph - effective permission resolution for SharePoint-style resources.

Expands role assignments through site groups and nested directory groups
into flat "who can do what, through which chain" records.

    from accessgraph import PermissionGraphWalker
    from accessgraph.clients import GraphDirectoryClient, SharePointRestClient

    walker = PermissionGraphWalker.from_sources(sharepoint, graph)
    records = await walker.resolve_resource(site_url, assignments)
"""

from .cache import KnownGroupCache, RedisKnownGroupCache, SharedKnownGroupCache
from .cancellation import CancellationToken
from .config import LogLevel, ResolverConfig, load_resolver_config_from_env
from .exceptions import (
    AccessGraphError,
    CacheError,
    ConfigurationError,
    ResolutionCancelled,
    TransportError,
)
from .expansion import (
    DirectoryGroupExpander,
    ExpanderRegistry,
    ExpansionFailure,
    ExpansionResult,
    GroupExpander,
    ResourceGroupExpander,
)
from .identifiers import DirectoryGroupId, FetchMode, decode_directory_group_id
from .interfaces import (
    DirectoryGroupSource,
    LoggerProgressSink,
    ProgressSink,
    ResourceGroupSource,
)
from .logging import get_resolution_logger, setup_logging
from .models import (
    AccessPath,
    DirectoryObject,
    DirectoryObjectKind,
    KnownGroupEntry,
    PermissionRecord,
    PrincipalKind,
    PrincipalRef,
    ResourceGroupMember,
    RoleAssignment,
)
from .permissions import is_system_principal, resolve_permission_levels
from .scan import build_cache, resolve_many
from .walker import PermissionGraphWalker, RecordAccumulator

__version__ = "0.3.0"

__all__ = [
    # Core
    "PermissionGraphWalker",
    "RecordAccumulator",
    "resolve_many",
    "build_cache",
    "CancellationToken",
    # Models
    "AccessPath",
    "DirectoryObject",
    "DirectoryObjectKind",
    "KnownGroupEntry",
    "PermissionRecord",
    "PrincipalKind",
    "PrincipalRef",
    "ResourceGroupMember",
    "RoleAssignment",
    # Expansion
    "DirectoryGroupExpander",
    "DirectoryGroupId",
    "ExpanderRegistry",
    "ExpansionFailure",
    "ExpansionResult",
    "FetchMode",
    "GroupExpander",
    "ResourceGroupExpander",
    "decode_directory_group_id",
    "is_system_principal",
    "resolve_permission_levels",
    # Cache
    "KnownGroupCache",
    "RedisKnownGroupCache",
    "SharedKnownGroupCache",
    # Collaborators
    "DirectoryGroupSource",
    "LoggerProgressSink",
    "ProgressSink",
    "ResourceGroupSource",
    # Config & logging
    "LogLevel",
    "ResolverConfig",
    "load_resolver_config_from_env",
    "get_resolution_logger",
    "setup_logging",
    # Errors
    "AccessGraphError",
    "CacheError",
    "ConfigurationError",
    "ResolutionCancelled",
    "TransportError",
]
