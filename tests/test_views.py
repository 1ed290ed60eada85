"""Tests for the public/admin view transforms."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic.alias_generators import to_camel

from folio.api.models import AdminView, PublicView
from folio.api.views import normalize_bool, to_admin_view, to_public_view
from folio.database.association_repo import AssociationDetail


@pytest.mark.parametrize(
    "value,fallback,expected",
    [
        (None, True, True),
        (None, False, False),
        (True, False, True),
        (False, True, False),
        (1, False, True),
        (0, True, False),
        (2, False, True),
        (Decimal("1"), False, True),
        (Decimal("0"), True, False),
        ("1", False, True),
        ("true", False, True),
        ("TRUE", False, True),
        ("Yes", False, True),
        (" yes ", False, True),
        ("0", True, False),
        ("false", True, False),
        ("no", True, False),
        ("", True, False),
        (b"\x01", False, True),
        (b"\x00", True, False),
    ],
)
def test_normalize_bool_truth_table(value, fallback, expected):
    """Test boolean normalization across driver representations."""
    assert normalize_bool(value, fallback) is expected


def _full_post_record():
    return {
        "kind": "post",
        "id": 42,
        "title": "Shipping Faster",
        "slug": "shipping-faster",
        "description": None,
        "content": "<p>Body</p>",
        "excerpt": "Short summary",
        "status": "PUBLISHED",
        "is_active": 1,
        "is_featured": "1",
        "featured_image": "/img/ship.png",
        "featured_image_alt": "A ship",
        "meta_title": "Shipping",
        "meta_description": "How we ship",
        "meta_keywords": "ship,fast",
        "sort_order": 0,
        "author_id": 3,
        "author_name": "Dana",
        "category_id": 5,
        "category_name": "Engineering",
        "category_slug": "engineering",
        "category_color": "#2563eb",
        "category_icon": "Code",
        "published_at": datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc),
        "created_at": "2025-02-28T09:00:00Z",
        "updated_at": None,
        "tags": [
            AssociationDetail(id=1, name="Python", slug="python", color="#3776ab"),
            {"id": 2, "name": "SQL", "slug": "sql"},
        ],
    }


def test_admin_view_every_field_dual_keyed():
    """Test that every admin field is serialized under both key forms with equal values."""
    dumped = to_admin_view(_full_post_record()).model_dump()

    for name in AdminView.model_fields:
        assert name in dumped, f"Missing storage key {name}"
        assert to_camel(name) in dumped, f"Missing presentation key {to_camel(name)}"
        assert dumped[name] == dumped[to_camel(name)]


def test_admin_view_dual_keys_with_null_sources():
    """Test that NULL source values are defaulted identically under both keys."""
    dumped = to_admin_view({"kind": "portfolio", "id": 1}).model_dump()

    for name in AdminView.model_fields:
        assert dumped[name] == dumped[to_camel(name)]
    assert dumped["isActive"] is True
    assert dumped["is_featured"] is False
    assert dumped["categoryName"] == "General"
    assert dumped["category_color"] == "#dc2626"
    assert dumped["categoryIcon"] == "Folder"
    assert dumped["project_type_name"] == ""
    assert dumped["projectTypeColor"] == "#6b7280"
    assert dumped["description"] == ""
    assert dumped["tagNames"] == []


def test_admin_view_fields_from_record():
    """Test field mapping for a complete post record."""
    view = to_admin_view(_full_post_record())

    assert view.kind == "post"
    assert view.is_active is True
    assert view.is_featured is True
    assert view.author_name == "Dana"
    assert view.category_id == 5
    assert view.tag_ids == [1, 2]
    assert view.tag_names == ["Python", "SQL"]
    assert view.tags[1].color == "#6B7280"
    assert view.published_at == "2025-03-01T12:00:00Z"
    assert view.created_at == "2025-02-28T09:00:00Z"
    assert view.updated_at is None
    # Posts have no project type
    assert view.project_type_name is None


def test_author_defaults_for_posts_only():
    """Test that posts default the author name and portfolio items carry none."""
    assert to_admin_view({"kind": "post", "id": 1}).author_name == "Admin"
    assert to_admin_view({"kind": "portfolio", "id": 1}).author_name is None


def test_public_view_strips_admin_fields():
    """Test that the public view exposes only the restricted field set."""
    dumped = to_public_view(_full_post_record()).model_dump()

    assert set(dumped) == set(PublicView.model_fields)
    for hidden in ("content", "status", "meta_title", "author_name", "isActive"):
        assert hidden not in dumped
    assert dumped["tags"] == ["Python", "SQL"]
    assert dumped["category"] == "Engineering"
    assert dumped["image"] == "/img/ship.png"


def test_public_view_description_falls_back_to_excerpt():
    """Test that posts without a description show their excerpt."""
    view = to_public_view(_full_post_record())

    assert view.description == "Short summary"
    assert view.project_type is None


def test_public_view_portfolio_defaults():
    """Test public defaults for a portfolio record with NULL sources."""
    view = to_public_view({"kind": "portfolio", "id": 9, "title": "Site", "slug": "site"})

    assert view.category == "General"
    assert view.category_color == "#dc2626"
    assert view.project_type == ""
    assert view.project_type_color == "#6b7280"
    assert view.tags == []
    assert view.image == ""
