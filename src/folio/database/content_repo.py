"""Repository functions for content item reads."""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from folio.database.entities import EntityKind
from folio.database.inspector import SchemaInspector
from folio.database.query_builder import (
    ContentFilters,
    Pagination,
    build_classification_select,
    build_select,
)
from folio.database.query_monitor import execute_with_monitoring


def query_content_items(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    filters: Optional[ContentFilters] = None,
    pagination: Optional[Pagination] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch raw content rows (canonical aliases, no associations).

    Args:
        session: SQLAlchemy session
        inspector: Schema inspector
        kind: Content kind
        filters: Optional filters
        pagination: Optional limit/offset (both required to take effect)

    Returns:
        List of row dicts in canonical order

    Raises:
        QueryExecutionError: If the query failed
    """
    features = inspector.content_features(session, kind)
    built = build_select(features, filters, pagination)
    result = execute_with_monitoring(session, built.text, built.params, f"query_content_items[{features.kind.value}]")
    return [dict(row) for row in result.mappings()]


def find_content_item_by_slug(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    slug: str,
    filters: Optional[ContentFilters] = None,
) -> Optional[Dict[str, Any]]:
    """Single raw row by slug, or None if no row matches."""
    filters = (filters or ContentFilters()).model_copy(update={"slug": slug})
    rows = query_content_items(session, inspector, kind, filters, Pagination(limit=1, offset=0))
    return rows[0] if rows else None


def query_classifications(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    secondary: bool = False,
    filters: Optional[ContentFilters] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch classification rows with usage counts.

    Returns an empty list when the kind has neither a classification table
    nor a legacy column for it.
    """
    features = inspector.content_features(session, kind)
    built = build_classification_select(features, secondary=secondary, filters=filters)
    if built is None:
        return []
    result = execute_with_monitoring(session, built.text, built.params, f"query_classifications[{features.kind.value}]")
    return [dict(row) for row in result.mappings()]
