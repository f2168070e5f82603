"""SharePoint REST source for site (resource-local) group membership."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from ..interfaces import ResourceGroupSource
from ..models import PrincipalKind, ResourceGroupMember
from .base import ODataClient

logger = logging.getLogger(__name__)

# SP.Utilities.PrincipalType
PRINCIPAL_TYPES = {
    1: PrincipalKind.USER,
    4: PrincipalKind.DIRECTORY_GROUP,
    8: PrincipalKind.RESOURCE_GROUP,
}


def _quote_group_name(name: str) -> str:
    # OData string literal: single quotes are doubled
    return quote(name.replace("'", "''"), safe="")


def member_from_payload(item: dict[str, Any]) -> ResourceGroupMember | None:
    """Map one ``/users`` item; None for principal types we do not expand."""
    kind = PRINCIPAL_TYPES.get(item.get("PrincipalType"))
    if kind is None:
        return None
    aad_object = item.get("AadObjectId") or {}
    return ResourceGroupMember(
        display_name=item.get("Title") or "",
        login_or_id=item.get("LoginName") or "",
        principal_kind=kind,
        directory_id=aad_object.get("NameId") or "",
        user_principal_name=item.get("UserPrincipalName") or "",
    )


class SharePointRestClient(ODataClient, ResourceGroupSource):
    """Reads site group members through ``_api/web/sitegroups``.

    ``resource_scope`` is the absolute site URL the group belongs to.
    """

    accept = "application/json;odata=nometadata"

    async def fetch_members(self, resource_scope: str, group_name: str) -> list[ResourceGroupMember]:
        url = f"{resource_scope.rstrip('/')}/_api/web/sitegroups/getbyname('{_quote_group_name(group_name)}')/users"

        members: list[ResourceGroupMember] = []
        async for item in self.iter_pages(url, next_link_field="odata.nextLink"):
            member = member_from_payload(item)
            if member is None:
                logger.debug(
                    "Skipping member '%s' of '%s' with principal type %s",
                    item.get("Title"),
                    group_name,
                    item.get("PrincipalType"),
                )
                continue
            members.append(member)
        return members


__all__ = ["PRINCIPAL_TYPES", "SharePointRestClient", "member_from_payload"]
