"""httpx implementations of the membership sources."""

from .base import ODataClient, TokenProvider
from .graph import GraphDirectoryClient
from .sharepoint import SharePointRestClient

__all__ = [
    "GraphDirectoryClient",
    "ODataClient",
    "SharePointRestClient",
    "TokenProvider",
]
