"""Batched resolution of many-to-many associations (tags, technologies).

A whole page of parents costs at most two round trips: one for the
junction pairs, one for the details of the distinct association ids found.
"""

from typing import Dict, Hashable, List, Sequence

from pydantic import BaseModel
from sqlalchemy import bindparam, text
from sqlalchemy.orm import Session

from folio.database.entities import EntityKind
from folio.database.inspector import SchemaInspector
from folio.database.query_builder import sql_literal
from folio.database.query_monitor import execute_with_monitoring
from folio.utils.logging import get_logger

logger = get_logger(__name__)


class AssociationDetail(BaseModel):
    id: int
    name: str
    slug: str = ""
    color: str = "#6B7280"


def resolve_associations(
    session: Session,
    inspector: SchemaInspector,
    kind: EntityKind | str,
    parent_ids: Sequence[Hashable],
) -> Dict[Hashable, List[AssociationDetail]]:
    """
    Resolve association details for a page of parent content ids.

    Args:
        session: SQLAlchemy session
        inspector: Schema inspector (decides degraded mode)
        kind: Content kind the parents belong to
        parent_ids: Parent content ids, any order

    Returns:
        Dict with one entry per requested parent id. Parents without
        associations map to an empty list; junction rows pointing at missing
        detail rows are dropped.
    """
    resolved: Dict[Hashable, List[AssociationDetail]] = {pid: [] for pid in parent_ids}
    if not resolved:
        return resolved

    features = inspector.content_features(session, kind)
    if not features.has_junction:
        return resolved

    source = features.descriptor.association
    pairs_sql = text(
        f"SELECT {source.parent_column} AS parent_id, {source.association_column} AS association_id "
        f"FROM {source.junction_table} "
        f"WHERE {source.parent_column} IN :parent_ids"
    ).bindparams(bindparam("parent_ids", expanding=True))
    pairs = execute_with_monitoring(
        session, pairs_sql, {"parent_ids": list(resolved)}, "resolve_associations.pairs"
    ).all()

    ids_by_parent: Dict[Hashable, List[Hashable]] = {pid: [] for pid in resolved}
    distinct_ids: Dict[Hashable, None] = {}
    for parent_id, association_id in pairs:
        bucket = ids_by_parent.setdefault(parent_id, [])
        if association_id not in bucket:
            bucket.append(association_id)
        distinct_ids[association_id] = None

    if not distinct_ids or not features.has_association_detail:
        return resolved

    slug = "slug" if features.association_has_slug else "''"
    color = (
        f"COALESCE(color, {sql_literal(source.default_color)})"
        if features.association_has_color
        else sql_literal(source.default_color)
    )
    details_sql = text(
        f"SELECT id, name, {slug} AS slug, {color} AS color "
        f"FROM {source.detail_table} WHERE id IN :ids"
    ).bindparams(bindparam("ids", expanding=True))
    rows = execute_with_monitoring(
        session, details_sql, {"ids": list(distinct_ids)}, "resolve_associations.details"
    ).all()

    details = {
        row.id: AssociationDetail(id=row.id, name=row.name or "", slug=row.slug or "", color=row.color or source.default_color)
        for row in rows
    }
    orphans = 0
    for parent_id, association_ids in ids_by_parent.items():
        found = [details[a] for a in association_ids if a in details]
        orphans += len(association_ids) - len(found)
        if parent_id in resolved:
            resolved[parent_id] = found
    if orphans:
        logger.debug(f"Dropped {orphans} orphan association reference(s) for {features.kind.value}")
    return resolved
