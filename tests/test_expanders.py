"""Tests for group expanders and the expander registry."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from accessgraph import (
    DirectoryGroupExpander,
    DirectoryObject,
    DirectoryObjectKind,
    ExpanderRegistry,
    ExpansionFailure,
    ExpansionResult,
    PrincipalKind,
    ResolutionCancelled,
    ResourceGroupExpander,
    ResourceGroupMember,
    TransportError,
)
from fakes import (
    SITE,
    FakeDirectory,
    FakeResourceGroups,
    directory_group,
    directory_user,
    resource_group,
    security_group,
    site_security_group,
    site_user,
)


class TestResourceGroupExpander:
    """Tests for ResourceGroupExpander."""

    @pytest.mark.asyncio
    async def test_users_and_nested_groups(self) -> None:
        sites = FakeResourceGroups(
            {
                (SITE, "Editors"): [
                    site_user("alice@x.com"),
                    site_security_group("grp1", "c:0t.c|tenant|grp1"),
                    ResourceGroupMember(
                        display_name="Owners",
                        login_or_id="Owners",
                        principal_kind=PrincipalKind.RESOURCE_GROUP,
                    ),
                ]
            }
        )
        result = await ResourceGroupExpander(sites).expand(resource_group("Editors"))

        assert isinstance(result, ExpansionResult)
        assert result.direct_users == ("alice@x.com",)
        assert len(result.nested_groups) == 1
        nested = result.nested_groups[0]
        assert nested.kind is PrincipalKind.DIRECTORY_GROUP
        assert nested.login_or_id == "c:0t.c|tenant|grp1"
        assert nested.resource_scope == SITE

    @pytest.mark.asyncio
    async def test_nested_group_without_directory_id_uses_login(self) -> None:
        sites = FakeResourceGroups(
            {
                (SITE, "Editors"): [
                    ResourceGroupMember(
                        display_name="grp2",
                        login_or_id="c:0t.c|tenant|grp2",
                        principal_kind=PrincipalKind.DIRECTORY_GROUP,
                    )
                ]
            }
        )
        result = await ResourceGroupExpander(sites).expand(resource_group("Editors"))
        assert result.nested_groups[0].login_or_id == "c:0t.c|tenant|grp2"

    @pytest.mark.asyncio
    async def test_user_without_any_name_is_skipped(self) -> None:
        sites = FakeResourceGroups(
            {(SITE, "Editors"): [ResourceGroupMember(principal_kind=PrincipalKind.USER)]}
        )
        result = await ResourceGroupExpander(sites).expand(resource_group("Editors"))
        assert result.direct_users == ()

    @pytest.mark.asyncio
    async def test_fetch_uses_scope_and_display_name(self) -> None:
        sites = FakeResourceGroups()
        await ResourceGroupExpander(sites).expand(resource_group("Site Visitors"))
        assert sites.calls == [(SITE, "Site Visitors")]

    @pytest.mark.asyncio
    async def test_failure_becomes_outcome(self) -> None:
        sites = FakeResourceGroups(failures={(SITE, "Editors"): TransportError("HTTP 403", status_code=403)})

        with patch("accessgraph.expansion.expanders.logger") as mock_logger:
            result = await ResourceGroupExpander(sites).expand(resource_group("Editors"))

        assert result == ExpansionFailure(message="HTTP 403")
        assert result.error_type == "TransportError"
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_any_collaborator_error_becomes_outcome(self) -> None:
        sites = FakeResourceGroups(failures={(SITE, "Editors"): KeyError("PrincipalType")})
        result = await ResourceGroupExpander(sites).expand(resource_group("Editors"))

        assert isinstance(result, ExpansionFailure)
        assert result.error_type == "KeyError"


class TestDirectoryGroupExpander:
    """Tests for DirectoryGroupExpander."""

    @pytest.mark.asyncio
    async def test_owners_and_members(self) -> None:
        directory = FakeDirectory(
            owners={"grp1": [directory_user("owner@x.com")]},
            members={"grp1": [directory_user("bob@x.com"), directory_group("inner", "inner-id")]},
        )
        result = await DirectoryGroupExpander(directory).expand(security_group("grp1", "c:0t.c|tenant|grp1"))

        assert directory.calls == [("owners_and_members", "grp1")]
        assert result.direct_users == ("owner@x.com", "bob@x.com")
        assert [(g.display_name, g.login_or_id) for g in result.nested_groups] == [("inner", "inner-id")]

    @pytest.mark.asyncio
    async def test_owners_only(self) -> None:
        directory = FakeDirectory(owners={"abc123": [directory_user("owner@x.com")]})
        result = await DirectoryGroupExpander(directory).expand(security_group("t", "c:0t.c|tenant|abc123_o"))

        assert directory.calls == [("owners", "abc123")]
        assert result.direct_users == ("owner@x.com",)

    @pytest.mark.asyncio
    async def test_other_objects_ignored(self) -> None:
        directory = FakeDirectory(
            members={
                "grp1": [
                    directory_user("bob@x.com"),
                    DirectoryObject(id="dev-1", display_name="laptop", kind="device"),
                ]
            }
        )
        result = await DirectoryGroupExpander(directory).expand(security_group("grp1", "grp1"))

        assert result.direct_users == ("bob@x.com",)
        assert result.nested_groups == ()

    @pytest.mark.asyncio
    async def test_user_without_upn_uses_id(self) -> None:
        directory = FakeDirectory(members={"grp1": [DirectoryObject(id="u-1", kind=DirectoryObjectKind.USER)]})
        result = await DirectoryGroupExpander(directory).expand(security_group("grp1", "grp1"))
        assert result.direct_users == ("u-1",)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        source = AsyncMock()
        source.fetch_owners_and_members.side_effect = ResolutionCancelled()

        with pytest.raises(ResolutionCancelled):
            await DirectoryGroupExpander(source).expand(security_group("grp1", "grp1"))

    @pytest.mark.asyncio
    async def test_asyncio_cancellation_propagates(self) -> None:
        source = AsyncMock()
        source.fetch_owners_and_members.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await DirectoryGroupExpander(source).expand(security_group("grp1", "grp1"))


class TestExpanderRegistry:
    """Tests for ExpanderRegistry."""

    def test_from_sources(self) -> None:
        registry = ExpanderRegistry.from_sources(FakeResourceGroups(), FakeDirectory())
        assert isinstance(registry.expander_for(PrincipalKind.RESOURCE_GROUP), ResourceGroupExpander)
        assert isinstance(registry.expander_for(PrincipalKind.DIRECTORY_GROUP), DirectoryGroupExpander)

    def test_users_have_no_expander(self) -> None:
        registry = ExpanderRegistry.from_sources(FakeResourceGroups(), FakeDirectory())
        with pytest.raises(LookupError, match="User"):
            registry.expander_for(PrincipalKind.USER)

    def test_register_replaces(self) -> None:
        registry = ExpanderRegistry(ResourceGroupExpander(FakeResourceGroups()))
        replacement = ResourceGroupExpander(FakeResourceGroups())
        registry.register(replacement)
        assert registry.expander_for(PrincipalKind.RESOURCE_GROUP) is replacement
