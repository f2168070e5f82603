"""Fixed vocabulary of the resolution engine.

Labels written into PermissionRecord rows and the names the engine filters
out. These strings are part of the report format consumers parse, so they
are constants rather than configuration.
"""

from __future__ import annotations

# ── Permission levels ───────────────────────────────────
# Granted by the platform as a side effect of item-level sharing. They carry
# no administrative meaning and are never reported.

LIMITED_ACCESS = "Limited Access"
WEB_ONLY_LIMITED_ACCESS = "Web-Only Limited Access"

EXCLUDED_PERMISSION_LEVELS: frozenset[str] = frozenset(
    {
        LIMITED_ACCESS,
        WEB_ONLY_LIMITED_ACCESS,
    }
)

PERMISSION_LEVEL_SEPARATOR = " | "

# ── System principals ───────────────────────────────────
# Claims that stand for every signed-in user. Not real groups: they cannot
# be expanded and are reported as a single "All Users" row.

EVERYONE = "Everyone"
EVERYONE_EXCEPT_EXTERNAL = "Everyone except external users"

SYSTEM_PRINCIPAL_NAMES: frozenset[str] = frozenset(
    {
        EVERYONE,
        EVERYONE_EXCEPT_EXTERNAL,
    }
)

ALL_USERS = "All Users"

# ── Record labels ───────────────────────────────────────

DIRECT_PERMISSIONS = "Direct Permissions"
USER_ACCOUNT = "User"
CYCLE_DETECTED = "Cycle detected"


__all__ = [
    "ALL_USERS",
    "CYCLE_DETECTED",
    "DIRECT_PERMISSIONS",
    "EVERYONE",
    "EVERYONE_EXCEPT_EXTERNAL",
    "EXCLUDED_PERMISSION_LEVELS",
    "LIMITED_ACCESS",
    "PERMISSION_LEVEL_SEPARATOR",
    "SYSTEM_PRINCIPAL_NAMES",
    "USER_ACCOUNT",
    "WEB_ONLY_LIMITED_ACCESS",
]
