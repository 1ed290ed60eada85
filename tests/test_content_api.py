"""Tests for the public and admin content API against real SQLite schemas."""

import pytest
from sqlalchemy.exc import OperationalError

from folio.api.content_api import (
    get_admin_item,
    get_public_item,
    list_admin_items,
    list_classifications,
    list_public_items,
    list_related_public_items,
)
from folio.api.models import NOT_FOUND
from folio.database.query_builder import ContentFilters, Pagination
from folio.database.schema import (
    Category,
    PortfolioCategory,
    PortfolioItem,
    PortfolioTechnology,
    Post,
    PostTag,
    ProjectType,
    Tag,
    Technology,
    User,
)

LEGACY_BLOG_SCHEMA = (
    "CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT, slug TEXT, content TEXT, "
    "status TEXT, category TEXT, created_at TEXT)",
    "CREATE TABLE post_tags (post_id INTEGER, tag_id INTEGER)",
    "CREATE TABLE tags (id INTEGER PRIMARY KEY, name TEXT, slug TEXT)",
    "INSERT INTO posts VALUES (1, 'Launch Notes', 'launch-notes', 'Body', 'PUBLISHED', "
    "'Marketing', '2024-05-01 10:00:00')",
    "INSERT INTO tags VALUES (1, 'SEO', 'seo'), (2, 'Growth', 'growth')",
    "INSERT INTO post_tags VALUES (1, 1), (1, 2), (1, 3)",
)


def _fail_execute(*args, **kwargs):
    raise OperationalError("SELECT ...", {}, Exception("connection reset by peer"))


@pytest.fixture
def blog(session):
    """Published, draft and archived posts across two categories."""
    session.add_all([
        User(id=1, name="Dana", email="dana@example.com"),
        Category(id=1, name="Design", slug="design", color="#9333ea", icon="Palette", sort_order=1),
        Category(id=2, name="Code", slug="code", sort_order=2),
        Category(id=3, name="Empty", slug="empty", sort_order=3),
        Post(id=1, title="Grids", slug="grids", status="PUBLISHED", category_id=1, author_id=1,
             published_at="2025-01-03T00:00:00Z", created_at="2025-01-01T00:00:00Z"),
        Post(id=2, title="Color", slug="color", status="PUBLISHED", category_id=1,
             published_at="2025-01-05T00:00:00Z", created_at="2025-01-02T00:00:00Z"),
        Post(id=3, title="Type", slug="type", status="PUBLISHED", category_id=1,
             created_at="2025-01-04T00:00:00Z"),
        Post(id=4, title="Wireframes", slug="wireframes", status="DRAFT", category_id=1,
             created_at="2025-01-06T00:00:00Z"),
        Post(id=5, title="Queries", slug="queries", status="PUBLISHED", category_id=2,
             published_at="2025-01-02T00:00:00Z", created_at="2025-01-02T00:00:00Z"),
        Tag(id=1, name="CSS", slug="css", color="#264de4"),
        PostTag(post_id=1, tag_id=1),
    ])
    session.commit()
    return session


def test_legacy_schema_category_and_orphan_tag(make_session, inspector):
    """Test a legacy text category, no categories table and one dangling tag id."""
    session = make_session(*LEGACY_BLOG_SCHEMA)

    result = get_admin_item(session, inspector, "post", "launch-notes")

    assert result.success and result.found
    view = result.data
    assert view.category_name == "Marketing"
    assert view.category_slug == "marketing"
    assert view.category_color == "#dc2626"
    assert view.tag_names == ["SEO", "Growth"]
    assert len(view.tag_ids) == 2
    assert view.author_name == "Admin"
    assert view.is_active is True

    public = get_public_item(session, inspector, "post", "launch-notes")
    assert public.category == "Marketing"
    assert public.category_slug == "marketing"
    assert public.category_color == "#dc2626"
    assert public.tags == ["SEO", "Growth"]


def test_admin_list_returns_everything_newest_first(session, inspector):
    """Test that an unpaginated admin list returns all 50 items by recency."""
    session.add_all([
        PortfolioItem(
            id=i,
            title=f"Project {i}",
            slug=f"project-{i}",
            is_active=True,
            created_at=f"2024-01-01T00:{i:02d}:00Z",
        )
        for i in range(1, 51)
    ])
    session.commit()

    result = list_admin_items(session, inspector, "portfolio")

    assert result.success
    assert len(result.data) == 50
    assert [item.id for item in result.data] == list(range(50, 0, -1))
    for item in result.data:
        dumped = item.model_dump()
        assert dumped["isActive"] == dumped["is_active"] is True


def test_public_item_hides_drafts(blog, inspector):
    """Test that drafts are invisible publicly but visible to admins."""
    assert get_public_item(blog, inspector, "post", "wireframes") is NOT_FOUND

    result = get_admin_item(blog, inspector, "post", "wireframes")
    assert result.found
    assert result.data.status == "DRAFT"


def test_public_item_fields(blog, inspector):
    """Test a published post through the public surface."""
    view = get_public_item(blog, inspector, "post", "grids")

    assert view.title == "Grids"
    assert view.category == "Design"
    assert view.category_color == "#9333ea"
    assert view.tags == ["CSS"]


def test_admin_item_missing_is_not_a_failure(blog, inspector):
    """Test that a missing slug is success with NOT_FOUND data."""
    result = get_admin_item(blog, inspector, "post", "does-not-exist")

    assert result.success is True
    assert result.data is NOT_FOUND
    assert not result.found
    assert result.to_dict() == {"success": True, "data": None, "message": "Not found"}


def test_admin_item_joins_author_and_category(blog, inspector):
    """Test normalized joins on a complete schema."""
    view = get_admin_item(blog, inspector, "post", "grids").data

    assert view.author_name == "Dana"
    assert view.category_icon == "Palette"
    assert view.category_slug == "design"
    assert view.published_at == "2025-01-03T00:00:00Z"


def test_admin_failure_returns_short_message(blog, inspector, monkeypatch):
    """Test that a driver failure becomes a ReadResult without the raw error."""
    inspector.content_features(blog, "post")
    monkeypatch.setattr(blog, "execute", _fail_execute)

    result = get_admin_item(blog, inspector, "post", "grids")
    listing = list_admin_items(blog, inspector, "post")

    assert result.success is False
    assert result.message == "Failed to load post item"
    assert "connection reset" not in result.to_dict()["message"]
    assert listing.success is False


def test_public_failure_degrades_to_empty(blog, inspector, monkeypatch):
    """Test that public reads return empty results when the query fails."""
    inspector.content_features(blog, "post")
    monkeypatch.setattr(blog, "execute", _fail_execute)

    assert list_public_items(blog, inspector, "post") == []
    assert get_public_item(blog, inspector, "post", "grids") is NOT_FOUND
    assert list_classifications(blog, inspector, "post") == []


def test_session_usable_after_catalog_failure(blog, inspector, monkeypatch):
    """Test that a failed catalog read is isolated in a savepoint on the caller's session."""
    real_execute = blog.execute
    nested_during_failure = []

    def catalog_fails(statement, *args, **kwargs):
        if "sqlite_master" in str(statement):
            nested_during_failure.append(blog.in_nested_transaction())
            raise OperationalError(str(statement), {}, Exception("current transaction is aborted"))
        return real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(blog, "execute", catalog_fails)

    views = list_public_items(blog, inspector, "post")

    assert nested_during_failure and all(nested_during_failure)
    assert not blog.in_nested_transaction()
    assert {view.slug for view in views} == {"grids", "color", "type", "queries"}


def test_public_list_ordering_and_visibility(blog, inspector):
    """Test that only published posts are listed, newest publish date first."""
    slugs = [view.slug for view in list_public_items(blog, inspector, "post")]

    # type has no published_at and falls back to its created_at
    assert slugs == ["color", "type", "grids", "queries"]


def test_public_list_ignores_caller_visibility_override(blog, inspector):
    """Test that callers cannot widen the public surface to drafts."""
    views = list_public_items(blog, inspector, "post", ContentFilters(status="DRAFT"))

    assert "wireframes" not in [view.slug for view in views]


def test_public_list_pagination(blog, inspector):
    """Test that a full limit/offset pair pages and a partial one does not."""
    page = list_public_items(blog, inspector, "post", pagination=Pagination(limit=2, offset=1))
    unpaged = list_public_items(blog, inspector, "post", pagination=Pagination(limit=2))

    assert [view.slug for view in page] == ["type", "grids"]
    assert len(unpaged) == 4


def test_related_items_share_category(blog, inspector):
    """Test related items exclude the current slug and stay in its category."""
    related = list_related_public_items(blog, inspector, "post", "grids", "Design", limit=3)

    assert [view.slug for view in related] == ["color", "type"]


def test_related_items_for_uncategorized_legacy_post(make_session, inspector):
    """Test that NULL and empty legacy categories both resolve to the default name."""
    session = make_session(
        "CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT, slug TEXT, status TEXT, category TEXT)",
        "INSERT INTO posts VALUES (1, 'A', 'a', 'PUBLISHED', NULL)",
        "INSERT INTO posts VALUES (2, 'B', 'b', 'PUBLISHED', '')",
        "INSERT INTO posts VALUES (3, 'C', 'c', 'PUBLISHED', 'News')",
    )

    current = get_public_item(session, inspector, "post", "a")
    related = list_related_public_items(session, inspector, "post", "a", current.category)

    assert current.category == "General"
    assert current.category_slug == "general"
    assert [view.slug for view in related] == ["b"]


def test_classifications_count_visible_items(blog, inspector):
    """Test category listing with counts of published posts only."""
    details = list_classifications(blog, inspector, "post")

    assert [(d.name, d.usage_count) for d in details] == [("Design", 3), ("Code", 1), ("Empty", 0)]
    assert details[0].icon == "Palette"
    assert details[1].color == "#dc2626"


def test_legacy_classifications_get_synthesized_ids(make_session, inspector):
    """Test legacy text categories are listed with 1-based ids and derived slugs."""
    session = make_session(
        *LEGACY_BLOG_SCHEMA,
        "INSERT INTO posts VALUES (2, 'Brand Voice', 'brand-voice', '', 'PUBLISHED', "
        "'Brand Strategy', '2024-05-02 10:00:00')",
        "INSERT INTO posts VALUES (3, 'Funnels', 'funnels', '', 'PUBLISHED', "
        "'Marketing', '2024-05-03 10:00:00')",
    )

    details = list_classifications(session, inspector, "post")

    assert [(d.id, d.name, d.slug, d.usage_count) for d in details] == [
        (1, "Marketing", "marketing", 2),
        (2, "Brand Strategy", "brand-strategy", 1),
    ]


def test_portfolio_public_surface(session, inspector):
    """Test portfolio visibility, project types and technologies."""
    session.add_all([
        PortfolioCategory(id=1, name="Web", slug="web", color="#0ea5e9"),
        ProjectType(id=1, name="Client", slug="client", color="#f59e0b"),
        Technology(id=1, name="Django", slug="django"),
        PortfolioItem(id=1, title="Shop", slug="shop", is_active=True, category_id=1,
                      project_type_id=1, created_at="2024-06-01T00:00:00Z"),
        PortfolioItem(id=2, title="Old Site", slug="old-site", is_active=False,
                      created_at="2024-07-01T00:00:00Z"),
        PortfolioTechnology(portfolio_id=1, technology_id=1),
    ])
    session.commit()

    views = list_public_items(session, inspector, "portfolio")

    assert [view.slug for view in views] == ["shop"]
    assert views[0].project_type == "Client"
    assert views[0].project_type_color == "#f59e0b"
    assert views[0].tags == ["Django"]

    project_types = list_classifications(session, inspector, "portfolio", secondary=True)
    assert [(d.name, d.usage_count) for d in project_types] == [("Client", 1)]


def test_posts_have_no_secondary_classification(blog, inspector):
    """Test that asking for a post's secondary classification is empty."""
    assert list_classifications(blog, inspector, "post", secondary=True) == []
