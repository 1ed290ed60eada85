"""Content API: the public and admin read surface for posts and portfolio items.

Rules for this layer:

1. No SQLAlchemy imports except ``Session`` for type hints
2. Queries live in the repositories; this module composes and transforms
3. Public reads degrade to empty results / NOT_FOUND on failure
4. Admin reads return ReadResult; raw errors stay in the server log
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..database.association_repo import resolve_associations
from ..database.content_repo import (
    find_content_item_by_slug,
    query_classifications,
    query_content_items,
)
from ..database.entities import EntityKind, get_descriptor
from ..database.inspector import SchemaInspector
from ..database.query_builder import ContentFilters, Pagination
from ..errors import QueryExecutionError
from ..utils.logging import get_logger
from .models import (
    NOT_FOUND,
    AdminView,
    ClassificationDetail,
    NotFound,
    PublicView,
    ReadResult,
)
from .views import to_admin_view, to_public_view

logger = get_logger(__name__)

PUBLISHED_STATUS = "PUBLISHED"


def public_filters(kind: EntityKind | str, **extra: Any) -> ContentFilters:
    """Filters restricting a kind to what anonymous visitors may see."""
    kind = EntityKind(kind)
    if kind == EntityKind.POST:
        return ContentFilters(status=PUBLISHED_STATUS, **extra)
    return ContentFilters(active=True, **extra)


def _attach_associations(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind,
    rows: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    associations = resolve_associations(session, inspector, kind, [row["id"] for row in rows])
    return [
        {**row, "kind": kind.value, "tags": associations.get(row["id"], [])}
        for row in rows
    ]


def get_public_item(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    slug: str,
) -> PublicView | NotFound:
    """
    Get one published/active item by slug.

    Returns:
        PublicView, or NOT_FOUND when no visible item matches (or the read failed)
    """
    kind = EntityKind(kind)
    try:
        row = find_content_item_by_slug(session, inspector, kind, slug, public_filters(kind))
        if row is None:
            return NOT_FOUND
        record = _attach_associations(session, inspector, kind, [row])[0]
    except QueryExecutionError as e:
        logger.error(f"get_public_item failed for {kind.value}/{slug}: {e}")
        return NOT_FOUND
    return to_public_view(record)


def list_public_items(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    filters: Optional[ContentFilters] = None,
    pagination: Optional[Pagination] = None,
) -> List[PublicView]:
    """
    List published/active items, newest first.

    Visibility always applies on top of ``filters``; without a complete
    limit/offset pair every matching item is returned.
    """
    kind = EntityKind(kind)
    requested = filters.model_dump(exclude={"status", "active"}) if filters else {}
    try:
        rows = query_content_items(session, inspector, kind, public_filters(kind, **requested), pagination)
        records = _attach_associations(session, inspector, kind, rows)
    except QueryExecutionError as e:
        logger.error(f"list_public_items failed for {kind.value}: {e}")
        return []
    return [to_public_view(record) for record in records]


def list_related_public_items(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    exclude_slug: str,
    classification: str,
    limit: int = 3,
) -> List[PublicView]:
    """Other visible items sharing a primary classification name."""
    filters = ContentFilters(exclude_slug=exclude_slug, category=classification)
    return list_public_items(session, inspector, kind, filters, Pagination(limit=limit, offset=0))


def get_admin_item(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    slug: str,
) -> ReadResult[AdminView]:
    """
    Get any item by slug regardless of status.

    Returns:
        ReadResult whose data is the AdminView, or NOT_FOUND
    """
    kind = EntityKind(kind)
    try:
        row = find_content_item_by_slug(session, inspector, kind, slug)
        if row is None:
            return ReadResult.ok(NOT_FOUND)
        record = _attach_associations(session, inspector, kind, [row])[0]
    except QueryExecutionError as e:
        logger.error(f"get_admin_item failed for {kind.value}/{slug}: {e}", exc_info=True)
        return ReadResult.fail(f"Failed to load {kind.value} item")
    return ReadResult.ok(to_admin_view(record))


def list_admin_items(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    pagination: Optional[Pagination] = None,
    status: Optional[str] = None,
) -> ReadResult[List[AdminView]]:
    """
    List every item of a kind (all statuses unless ``status`` is given).

    Some admin screens paginate client-side, so omitting pagination returns
    everything.
    """
    kind = EntityKind(kind)
    try:
        rows = query_content_items(session, inspector, kind, ContentFilters(status=status), pagination)
        records = _attach_associations(session, inspector, kind, rows)
    except QueryExecutionError as e:
        logger.error(f"list_admin_items failed for {kind.value}: {e}", exc_info=True)
        return ReadResult.fail(f"Failed to load {kind.value} items")
    return ReadResult.ok([to_admin_view(record) for record in records])


def list_classifications(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    secondary: bool = False,
) -> List[ClassificationDetail]:
    """
    List classifications of a kind with the number of visible items using each.

    Args:
        secondary: List the secondary classification (portfolio project types)

    Returns:
        ClassificationDetail list; legacy free-text classifications get
        synthesized ids (1-based, by usage) and derived slugs
    """
    kind = EntityKind(kind)
    descriptor = get_descriptor(kind)
    source = descriptor.secondary if secondary else descriptor.primary
    if source is None:
        return []
    try:
        rows = query_classifications(session, inspector, kind, secondary=secondary, filters=public_filters(kind))
    except QueryExecutionError as e:
        logger.error(f"list_classifications failed for {kind.value}: {e}")
        return []

    details = []
    for index, row in enumerate(rows, start=1):
        details.append(
            ClassificationDetail(
                id=row.get("id") if row.get("id") is not None else index,
                name=row.get("name") or source.default_name,
                slug=row.get("slug") or "",
                color=row.get("color") or source.default_color,
                icon=row.get("icon") or source.default_icon,
                sort_order=int(row.get("sort_order") or 0),
                usage_count=int(row.get("usage_count") or 0),
            )
        )
    return details
