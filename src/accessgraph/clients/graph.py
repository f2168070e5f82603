"""Directory (Microsoft Graph) source for security group owners and members."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Optional

import httpx

from ..config import DEFAULT_GRAPH_BASE_URL, ResolverConfig
from ..interfaces import DirectoryGroupSource
from ..models import DirectoryObject, DirectoryObjectKind
from .base import DEFAULT_TIMEOUT, ODataClient, TokenProvider

ODATA_TYPES = {
    "#microsoft.graph.user": DirectoryObjectKind.USER,
    "#microsoft.graph.group": DirectoryObjectKind.SECURITY_GROUP,
}

SELECT_FIELDS = "id,displayName,userPrincipalName"


def object_from_payload(item: dict[str, Any]) -> DirectoryObject:
    return DirectoryObject(
        id=item["id"],
        display_name=item.get("displayName") or "",
        kind=ODATA_TYPES.get(item.get("@odata.type", ""), DirectoryObjectKind.OTHER),
        user_principal_name=item.get("userPrincipalName") or "",
    )


class GraphDirectoryClient(ODataClient, DirectoryGroupSource):
    """Lists ``/groups/{id}/owners`` and ``/groups/{id}/members``.

    Owners come first in ``fetch_owners_and_members``; an object that is
    both owner and member is returned twice, as Graph reports it.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        base_url: str = DEFAULT_GRAPH_BASE_URL,
        page_size: int = 100,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(token_provider, http_client=http_client, timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size

    @classmethod
    def from_config(
        cls,
        config: ResolverConfig,
        token_provider: TokenProvider,
        **kwargs: Any,
    ) -> GraphDirectoryClient:
        return cls(
            token_provider,
            base_url=config.graph_base_url,
            page_size=config.page_size,
            timeout=config.http_timeout_seconds,
            **kwargs,
        )

    def _list(self, directory_id: str, relation: str) -> AsyncIterator[dict[str, Any]]:
        return self.iter_pages(
            f"{self.base_url}/groups/{directory_id}/{relation}",
            next_link_field="@odata.nextLink",
            params={"$select": SELECT_FIELDS, "$top": self.page_size},
        )

    async def _collect(self, directory_id: str, relation: str) -> list[DirectoryObject]:
        return [object_from_payload(item) async for item in self._list(directory_id, relation)]

    async def fetch_owners(self, directory_id: str) -> list[DirectoryObject]:
        return await self._collect(directory_id, "owners")

    async def fetch_owners_and_members(self, directory_id: str) -> list[DirectoryObject]:
        owners = await self._collect(directory_id, "owners")
        members = await self._collect(directory_id, "members")
        return owners + members


__all__ = ["GraphDirectoryClient", "ODATA_TYPES", "object_from_payload"]
