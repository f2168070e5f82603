"""Permission level rendering."""

from __future__ import annotations

from collections.abc import Iterable

from .constants import EXCLUDED_PERMISSION_LEVELS, PERMISSION_LEVEL_SEPARATOR


def resolve_permission_levels(
    role_definition_names: Iterable[str],
    *,
    excluded: frozenset[str] = EXCLUDED_PERMISSION_LEVELS,
    separator: str = PERMISSION_LEVEL_SEPARATOR,
) -> str:
    """Render role-definition bindings as one display string.

    Order is preserved and Limited Access levels are dropped. An empty
    result means the assignment grants nothing reportable.

    Example::

        >>> resolve_permission_levels(["Limited Access", "Edit", "Read"])
        'Edit | Read'
        >>> resolve_permission_levels(["Web-Only Limited Access"])
        ''
    """
    return separator.join(name for name in role_definition_names if name and name not in excluded)


__all__ = ["resolve_permission_levels"]
