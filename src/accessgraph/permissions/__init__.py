"""Filters applied to role assignments before expansion.

Defines:
- resolve_permission_levels(): role definitions → display string
- is_system_principal(): "Everyone" claims that short-circuit expansion
- Labels used in PermissionRecord rows
"""

from .constants import (
    ALL_USERS,
    CYCLE_DETECTED,
    DIRECT_PERMISSIONS,
    EXCLUDED_PERMISSION_LEVELS,
    PERMISSION_LEVEL_SEPARATOR,
    SYSTEM_PRINCIPAL_NAMES,
    USER_ACCOUNT,
)
from .levels import resolve_permission_levels
from .system import is_system_principal

__all__ = [
    "ALL_USERS",
    "CYCLE_DETECTED",
    "DIRECT_PERMISSIONS",
    "EXCLUDED_PERMISSION_LEVELS",
    "PERMISSION_LEVEL_SEPARATOR",
    "SYSTEM_PRINCIPAL_NAMES",
    "USER_ACCOUNT",
    "is_system_principal",
    "resolve_permission_levels",
]
