"""Pure transforms from raw content rows to the public and admin read models.

Records are the row dicts produced by the content repository, plus ``kind``
and the resolved ``tags`` (AssociationDetail list). Same record in, same view
out: nothing here queries or caches.
"""

from typing import Any, List, Mapping, Optional

from ..database.association_repo import AssociationDetail
from ..database.entities import EntityDescriptor, get_descriptor
from ..utils.time import format_timestamp
from .models import AdminView, PublicView

TRUE_STRINGS = frozenset({"1", "true", "yes"})


def normalize_bool(value: Any, fallback: bool) -> bool:
    """
    Normalize a driver value to bool.

    None (missing) -> fallback; numbers -> non-zero; strings -> one of
    "1"/"true"/"yes" (any case); bytes (MySQL BIT) -> any non-zero byte.
    """
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if isinstance(value, (bytes, bytearray)):
        return any(value)
    try:
        return float(value) != 0  # Decimal
    except (TypeError, ValueError):
        return fallback


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _text_or(value: Any, default: str) -> str:
    return str(value) if value not in (None, "") else default


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _tags(record: Mapping[str, Any]) -> List[AssociationDetail]:
    return [
        tag if isinstance(tag, AssociationDetail) else AssociationDetail.model_validate(tag)
        for tag in record.get("tags") or []
    ]


def _descriptor(record: Mapping[str, Any]) -> EntityDescriptor:
    return get_descriptor(record["kind"])


def to_public_view(record: Mapping[str, Any]) -> PublicView:
    """Restricted projection for unauthenticated pages."""
    descriptor = _descriptor(record)
    primary = descriptor.primary
    secondary = descriptor.secondary

    project_type = None
    project_type_color = None
    if secondary is not None:
        project_type = _text_or(record.get(f"{secondary.prefix}_name"), secondary.default_name)
        project_type_color = _text_or(record.get(f"{secondary.prefix}_color"), secondary.default_color)

    return PublicView(
        id=record["id"],
        title=_text(record.get("title")),
        slug=_text(record.get("slug")),
        description=_text(record.get("description")) or _text(record.get("excerpt")),
        image=_text(record.get("featured_image")),
        category=_text_or(record.get(f"{primary.prefix}_name"), primary.default_name),
        category_slug=_text(record.get(f"{primary.prefix}_slug")),
        category_color=_text_or(record.get(f"{primary.prefix}_color"), primary.default_color),
        project_type=project_type,
        project_type_color=project_type_color,
        tags=[tag.name for tag in _tags(record)],
        created_at=format_timestamp(record.get("created_at")),
        updated_at=format_timestamp(record.get("updated_at")),
    )


def to_admin_view(record: Mapping[str, Any]) -> AdminView:
    """Complete projection for the admin panel (dual-keyed when serialized)."""
    descriptor = _descriptor(record)
    primary = descriptor.primary
    secondary = descriptor.secondary
    tags = _tags(record)

    project_type = {}
    if secondary is not None:
        project_type = {
            "project_type_id": _optional_int(record.get(secondary.fk_column)),
            "project_type_name": _text_or(record.get(f"{secondary.prefix}_name"), secondary.default_name),
            "project_type_slug": _text(record.get(f"{secondary.prefix}_slug")),
            "project_type_color": _text_or(record.get(f"{secondary.prefix}_color"), secondary.default_color),
        }

    author_name = None
    if descriptor.author_table:
        author_name = _text_or(record.get("author_name"), descriptor.default_author)

    return AdminView(
        id=record["id"],
        kind=descriptor.kind.value,
        title=_text(record.get("title")),
        slug=_text(record.get("slug")),
        description=_text(record.get("description")),
        content=_text(record.get("content")),
        excerpt=_text(record.get("excerpt")),
        status=_text(record.get("status")),
        is_active=normalize_bool(record.get("is_active"), True),
        is_featured=normalize_bool(record.get("is_featured"), False),
        featured_image=_text(record.get("featured_image")),
        featured_image_alt=_text(record.get("featured_image_alt")),
        project_url=_text(record.get("project_url")),
        github_url=_text(record.get("github_url")),
        meta_title=_text(record.get("meta_title")),
        meta_description=_text(record.get("meta_description")),
        meta_keywords=_text(record.get("meta_keywords")),
        sort_order=int(record.get("sort_order") or 0),
        author_id=_optional_int(record.get("author_id")),
        author_name=author_name,
        category_id=_optional_int(record.get(primary.fk_column)),
        category_name=_text_or(record.get(f"{primary.prefix}_name"), primary.default_name),
        category_slug=_text(record.get(f"{primary.prefix}_slug")),
        category_color=_text_or(record.get(f"{primary.prefix}_color"), primary.default_color),
        category_icon=record.get(f"{primary.prefix}_icon") or primary.default_icon,
        tag_ids=[tag.id for tag in tags],
        tag_names=[tag.name for tag in tags],
        tag_slugs=[tag.slug for tag in tags],
        tags=tags,
        published_at=format_timestamp(record.get("published_at")),
        created_at=format_timestamp(record.get("created_at")),
        updated_at=format_timestamp(record.get("updated_at")),
        **project_type,
    )
