"""Group expansion over remote membership sources."""

from .expanders import (
    DirectoryGroupExpander,
    ExpanderRegistry,
    ExpansionFailure,
    ExpansionOutcome,
    ExpansionResult,
    GroupExpander,
    ResourceGroupExpander,
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
