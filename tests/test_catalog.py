"""Catalog store: categories, links and tags."""

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import Conflict, NotFound
from linkdeck.models.engagement import ClickRecord, Favorite
from linkdeck.models.link import LinkStatus
from linkdeck.models.tag import Tag
from linkdeck.schemas.category import CategoryCreate, CategoryUpdate
from linkdeck.schemas.link import LinkCreate, LinkUpdate, normalize_url
from linkdeck.schemas.tag import TagCreate, TagUpdate
from linkdeck.services import (
    category_service,
    engagement_service,
    link_service,
    tag_service,
)
from tests.factories import create_category, create_link, create_user


class TestCategories:
    async def test_duplicate_name_conflicts(self, session: AsyncSession):
        await create_category("Dev")

        with pytest.raises(Conflict):
            await category_service.create_category(session, CategoryCreate(name="Dev"))

    async def test_defaults_applied(self, session: AsyncSession):
        category = await category_service.create_category(
            session,
            CategoryCreate(name="  Dev  "),
        )

        assert category.name == "Dev"
        assert category.icon == "📁"
        assert category.color == "#007bff"

    async def test_rename_onto_existing_name_conflicts(self, session: AsyncSession):
        await create_category("Dev")
        ops = await create_category("Ops")

        ops = await category_service.get_category(session, ops.id)
        with pytest.raises(Conflict):
            await category_service.update_category(session, ops, CategoryUpdate(name="Dev"))

    async def test_delete_with_links_is_refused(self, session: AsyncSession):
        category = await create_category("Dev")
        await create_link("Git", category.id)

        with pytest.raises(Conflict):
            await category_service.delete_category(session, category.id)

    async def test_delete_unknown_raises_not_found(self, session: AsyncSession):
        with pytest.raises(NotFound):
            await category_service.delete_category(session, 42)

    async def test_stats_count_active_links_only(self, session: AsyncSession):
        category = await create_category("Dev")
        git = await create_link("Git", category.id)
        await create_link("Old", category.id, status=LinkStatus.INACTIVE)
        await create_category("Hidden", active=False)

        for _ in range(3):
            await engagement_service.record_click(session, git.id)
        await session.commit()

        rows = await category_service.list_categories_with_stats(session)

        assert [(c.name, links, clicks) for c, links, clicks in rows] == [("Dev", 1, 3)]

    def test_color_must_be_hex(self):
        with pytest.raises(SchemaValidationError):
            CategoryCreate(name="Dev", color="blue")


class TestLinks:
    async def test_create_link_unknown_category(self, session: AsyncSession):
        with pytest.raises(NotFound):
            await link_service.create_link(
                session,
                LinkCreate(title="Git", url="https://git.example.com", category_id=99),
            )

    async def test_create_link_creates_tags_on_demand(self, session: AsyncSession):
        category = await create_category("Dev")

        link = await link_service.create_link(
            session,
            LinkCreate(
                title="Go docs",
                url="go.dev",
                category_id=category.id,
                tag_names=["go", "Go", " go ", ""],
            ),
        )

        assert link.url == "https://go.dev"
        assert link.click_count == 0
        assert link.category.name == "Dev"
        # Case-sensitive, duplicates and blanks dropped
        assert sorted(tag.name for tag in link.tags) == ["Go", "go"]

    async def test_existing_tags_are_reused(self, session: AsyncSession):
        category = await create_category("Dev")
        await create_link("Git", category.id, tag_names=["vcs"])
        await create_link("Hg", category.id, tag_names=["vcs"])

        result = await session.execute(select(func.count(Tag.id)))
        assert result.scalar() == 1

    async def test_update_replaces_tags(self, session: AsyncSession):
        category = await create_category("Dev")
        git = await create_link("Git", category.id, tag_names=["vcs", "tools"])

        link = await link_service.get_link(session, git.id)
        updated = await link_service.update_link(
            session,
            link,
            LinkUpdate(title="GitLab", tag_names=["gitlab"]),
        )

        assert updated.title == "GitLab"
        assert [tag.name for tag in updated.tags] == ["gitlab"]

    async def test_attach_and_detach_tags(self, session: AsyncSession):
        category = await create_category("Dev")
        git = await create_link("Git", category.id, tag_names=["vcs"])

        link = await link_service.get_link(session, git.id)
        await tag_service.attach_tags(session, link, ["tools", "vcs"])
        assert [tag.name for tag in link.tags] == ["vcs", "tools"]

        await tag_service.detach_tags(session, link, ["vcs", "unknown"])
        assert [tag.name for tag in link.tags] == ["tools"]

    async def test_list_links_filters(self, session: AsyncSession):
        dev = await create_category("Dev")
        ops = await create_category("Ops")
        await create_link("Git", dev.id, tag_names=["vcs"])
        await create_link("Wiki", dev.id, status=LinkStatus.INACTIVE)
        await create_link("Grafana", ops.id, tag_names=["monitoring"])

        links, total = await link_service.list_links(session, status=LinkStatus.ACTIVE)
        assert total == 2
        assert [link.title for link in links] == ["Git", "Grafana"]

        links, total = await link_service.list_links(session, tag="monitoring")
        assert [link.title for link in links] == ["Grafana"]

        links, total = await link_service.list_links(session, search="wik")
        assert [link.title for link in links] == ["Wiki"]

        links, total = await link_service.list_links(session, category_id=dev.id, page_size=1)
        assert total == 2
        assert len(links) == 1

    async def test_related_links_by_popularity(self, session: AsyncSession):
        dev = await create_category("Dev")
        git = await create_link("Git", dev.id)
        ci = await create_link("CI", dev.id)
        wiki = await create_link("Wiki", dev.id)
        await create_link("Old", dev.id, status=LinkStatus.INACTIVE)

        await engagement_service.record_click(session, wiki.id)
        await session.commit()

        related = await link_service.get_related_links(session, git)

        assert [link.id for link in related] == [wiki.id, ci.id]

    async def test_delete_link_keeps_click_history(self, session: AsyncSession):
        dev = await create_category("Dev")
        git = await create_link("Git", dev.id, tag_names=["vcs"])
        user = await create_user("bob")

        await engagement_service.record_click(session, git.id, user_id=user.id)
        await engagement_service.favorite_link(session, user.id, git.id)
        await session.commit()

        await link_service.delete_link(session, git.id)

        favorites = await session.execute(select(func.count(Favorite.id)))
        clicks = await session.execute(select(func.count(ClickRecord.id)))
        tags = await session.execute(select(func.count(Tag.id)))
        assert favorites.scalar() == 0
        assert clicks.scalar() == 1
        assert tags.scalar() == 1
        with pytest.raises(NotFound):
            await link_service.get_link(session, git.id)


class TestTags:
    async def test_create_and_rename(self, session: AsyncSession):
        tag = await tag_service.create_tag(session, TagCreate(name="python"))
        assert tag.color.startswith("#") and len(tag.color) == 7

        await tag_service.create_tag(session, TagCreate(name="rust", color="#ff0000"))
        with pytest.raises(Conflict):
            await tag_service.update_tag(session, tag, TagUpdate(name="rust"))

        renamed = await tag_service.update_tag(session, tag, TagUpdate(name="py"))
        assert renamed.name == "py"

    async def test_names_are_case_sensitive(self, session: AsyncSession):
        await tag_service.create_tag(session, TagCreate(name="Go"))
        await tag_service.create_tag(session, TagCreate(name="go"))

        with pytest.raises(Conflict):
            await tag_service.create_tag(session, TagCreate(name="go"))

    async def test_delete_tag_keeps_links(self, session: AsyncSession):
        dev = await create_category("Dev")
        git = await create_link("Git", dev.id, tag_names=["vcs"])

        tag = await tag_service.get_tag_by_name(session, "vcs")
        await tag_service.delete_tag(session, tag.id)
        await session.commit()

        link = await link_service.get_link(session, git.id)
        await session.refresh(link, ["tags"])
        assert link.tags == []

    async def test_counts(self, session: AsyncSession):
        dev = await create_category("Dev")
        await create_link("Git", dev.id, tag_names=["vcs", "tools"])
        await create_link("Hg", dev.id, tag_names=["vcs"])
        await create_link("Old", dev.id, status=LinkStatus.INACTIVE, tag_names=["tools"])

        rows, total = await tag_service.list_tags(session)
        assert total == 2
        assert [(tag.name, count) for tag, count in rows] == [("tools", 2), ("vcs", 2)]

        popular = await tag_service.popular_tags(session)
        assert [(tag.name, count) for tag, count in popular] == [("vcs", 2), ("tools", 1)]


class TestUrlNormalization:
    def test_bare_host_gets_https(self):
        assert normalize_url(" grafana.example.com/d/1 ") == "https://grafana.example.com/d/1"

    @pytest.mark.parametrize(
        "value",
        [
            "http://localhost:3000",
            "http://jenkins:8080/",
            "https://wiki/Runbooks",
            "http://[::1]:8080/",
            "http://10.0.0.5:3000",
        ],
    )
    def test_internal_hosts_kept(self, value: str):
        assert normalize_url(value) == value

    def test_bare_internal_host_gets_https(self):
        assert normalize_url("grafana:3000") == "https://grafana:3000"

    @pytest.mark.parametrize("value", ["ftp://files.example.com", "not a url", "https://", ""])
    def test_rejected(self, value: str):
        with pytest.raises(ValueError):
            normalize_url(value)
