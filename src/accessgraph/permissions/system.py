"""Recognition of built-in "everyone" principals."""

from __future__ import annotations

from .constants import SYSTEM_PRINCIPAL_NAMES


def is_system_principal(display_name: str | None) -> bool:
    """True for principals that stand for all users and cannot be expanded."""
    return display_name in SYSTEM_PRINCIPAL_NAMES


__all__ = ["is_system_principal"]
