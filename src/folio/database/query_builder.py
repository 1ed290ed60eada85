"""Schema-tolerant SELECT construction for content items.

The builder only emits SQL text and bound parameters; it never talks to the
database. Every optional column is selected under one canonical alias whether
or not it exists, so the code reading rows never branches on schema shape.
Many-to-many associations are deliberately left out (see association_repo).
"""

from dataclasses import fields
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from folio.database.inspector import (
    ClassificationStrategy,
    ContentColumns,
    ContentFeatures,
    DefaultClassification,
    LegacyClassification,
    NormalizedClassification,
)

MAIN_ALIAS = "p"
AUTHOR_ALIAS = "a"


class ContentFilters(BaseModel):
    slug: Optional[str] = None
    exclude_slug: Optional[str] = None
    category: Optional[str] = None  # matched against the resolved primary classification name
    status: Optional[str] = None  # ignored when the status column is missing
    active: Optional[bool] = None  # ignored when the is_active column is missing


class Pagination(BaseModel):
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)

    @property
    def is_applied(self) -> bool:
        """Only a complete limit/offset pair paginates; anything else returns all rows."""
        return self.limit is not None and self.offset is not None


class BuiltQuery(NamedTuple):
    text: str
    params: Dict[str, Any]


def sql_literal(value: Optional[str]) -> str:
    if value is None:
        return "NULL"
    return "'" + value.replace("'", "''") + "'"


def published_expression(columns: ContentColumns) -> str:
    """Publish timestamp, falling back to the creation timestamp."""
    p = MAIN_ALIAS
    if columns.published_at and columns.created_at:
        return f"COALESCE({p}.published_at, {p}.created_at)"
    if columns.published_at:
        return f"{p}.published_at"
    if columns.created_at:
        return f"{p}.created_at"
    return "NULL"


def slug_expression(column_sql: str) -> str:
    return f"LOWER(REPLACE({column_sql}, ' ', '-'))"


def classification_parts(strategy: ClassificationStrategy) -> Tuple[List[str], Optional[str], str]:
    """
    SELECT items, JOIN clause and name expression for one classification.

    Returns:
        (select parts, join clause or None, SQL expression for the name)
    """
    source = strategy.source
    prefix = source.prefix
    default_color = sql_literal(source.default_color)
    default_icon = sql_literal(source.default_icon)

    if isinstance(strategy, NormalizedClassification):
        c = source.join_alias
        name_expr = f"COALESCE({c}.name, {sql_literal(source.default_name)})"
        slug = f"COALESCE({c}.slug, '')" if strategy.has_slug else "''"
        color = f"COALESCE({c}.color, {default_color})" if strategy.has_color else default_color
        if strategy.has_icon:
            icon = f"COALESCE({c}.icon, {default_icon})" if source.default_icon else f"{c}.icon"
        else:
            icon = default_icon
        join = f"LEFT JOIN {source.table} {c} ON {MAIN_ALIAS}.{source.fk_column} = {c}.id"
    elif isinstance(strategy, LegacyClassification):
        column = f"{MAIN_ALIAS}.{source.legacy_column}"
        name_expr = f"COALESCE(NULLIF({column}, ''), {sql_literal(source.default_name)})"
        slug = slug_expression(name_expr)
        color = default_color
        icon = default_icon
        join = None
    elif isinstance(strategy, DefaultClassification):
        name_expr = sql_literal(source.default_name)
        slug = "''"
        color = default_color
        icon = default_icon
        join = None
    else:
        raise TypeError(f"Unknown classification strategy: {strategy!r}")

    parts = [
        f"{name_expr} AS {prefix}_name",
        f"{slug} AS {prefix}_slug",
        f"{color} AS {prefix}_color",
        f"{icon} AS {prefix}_icon",
    ]
    return parts, join, name_expr


def visibility_conditions(
    columns: ContentColumns,
    filters: ContentFilters,
    params: Dict[str, Any],
) -> List[str]:
    conditions = []
    if filters.status is not None and columns.status:
        conditions.append(f"{MAIN_ALIAS}.status = :status")
        params["status"] = filters.status
    if filters.active is not None and columns.is_active:
        conditions.append(f"{MAIN_ALIAS}.is_active = :is_active")
        params["is_active"] = filters.active
    return conditions


def build_select(
    features: ContentFeatures,
    filters: Optional[ContentFilters] = None,
    pagination: Optional[Pagination] = None,
) -> BuiltQuery:
    """
    Build the content SELECT for one entity kind.

    Args:
        features: Inspected features of the kind (carries the kind itself)
        filters: Optional filters
        pagination: Applied only when both limit and offset are set

    Returns:
        BuiltQuery(text, params)
    """
    filters = filters or ContentFilters()
    descriptor = features.descriptor
    columns = features.columns
    p = MAIN_ALIAS

    select_parts = [f"{p}.id AS id", f"{p}.slug AS slug", f"{p}.title AS title"]
    for flag in fields(ContentColumns):
        if flag.metadata.get("computed"):
            continue
        if getattr(columns, flag.name):
            select_parts.append(f"{p}.{flag.name} AS {flag.name}")
        else:
            select_parts.append(f"{flag.metadata['fallback']} AS {flag.name}")
    select_parts.append(f"{published_expression(columns)} AS published_at")

    join_clauses: List[str] = []
    primary_parts, primary_join, primary_name = classification_parts(features.primary)
    select_parts.extend(primary_parts)
    if primary_join:
        join_clauses.append(primary_join)

    if features.secondary is not None:
        secondary_parts, secondary_join, _ = classification_parts(features.secondary)
        select_parts.extend(secondary_parts)
        if secondary_join:
            join_clauses.append(secondary_join)

    if descriptor.author_table:
        default_author = sql_literal(descriptor.default_author)
        if features.author_join:
            a = AUTHOR_ALIAS
            select_parts.append(f"COALESCE({a}.name, {default_author}) AS author_name")
            join_clauses.append(f"LEFT JOIN {descriptor.author_table} {a} ON {p}.author_id = {a}.id")
        else:
            select_parts.append(f"{default_author} AS author_name")

    params: Dict[str, Any] = {}
    conditions: List[str] = []
    if filters.slug is not None:
        conditions.append(f"{p}.slug = :slug")
        params["slug"] = filters.slug
    if filters.exclude_slug is not None:
        conditions.append(f"{p}.slug <> :exclude_slug")
        params["exclude_slug"] = filters.exclude_slug
    if filters.category is not None:
        conditions.append(f"{primary_name} = :category")
        params["category"] = filters.category
    conditions.extend(visibility_conditions(columns, filters, params))

    order_parts = []
    if columns.sort_order:
        order_parts.append(f"{p}.sort_order ASC")
    published = published_expression(columns)
    if published != "NULL":
        order_parts.append(f"{published} DESC")
    order_parts.append(f"{p}.id DESC")

    lines = [
        "SELECT " + ", ".join(select_parts),
        f"FROM {descriptor.table} {p}",
    ]
    lines.extend(join_clauses)
    if conditions:
        lines.append("WHERE " + " AND ".join(conditions))
    lines.append("ORDER BY " + ", ".join(order_parts))
    if pagination is not None and pagination.is_applied:
        lines.append("LIMIT :limit OFFSET :offset")
        params["limit"] = pagination.limit
        params["offset"] = pagination.offset

    return BuiltQuery(text="\n".join(lines), params=params)


def build_classification_select(
    features: ContentFeatures,
    secondary: bool = False,
    filters: Optional[ContentFilters] = None,
) -> Optional[BuiltQuery]:
    """
    Build the classification listing with per-classification usage counts.

    Only items matching the visibility part of ``filters`` (status/active)
    are counted.

    Returns:
        BuiltQuery, or None when the kind has no such classification at all
    """
    strategy = features.secondary if secondary else features.primary
    if strategy is None or isinstance(strategy, DefaultClassification):
        return None

    filters = filters or ContentFilters()
    descriptor = features.descriptor
    source = strategy.source
    p = MAIN_ALIAS
    params: Dict[str, Any] = {}
    visibility = visibility_conditions(features.columns, filters, params)

    if isinstance(strategy, NormalizedClassification):
        c = source.join_alias
        group_by = [f"{c}.id", f"{c}.name"]
        slug = f"{c}.slug" if strategy.has_slug else "''"
        color = f"{c}.color" if strategy.has_color else "NULL"
        icon = f"{c}.icon" if strategy.has_icon else "NULL"
        sort_order = f"{c}.sort_order" if strategy.has_sort_order else "0"
        for present, column in (
            (strategy.has_slug, "slug"),
            (strategy.has_color, "color"),
            (strategy.has_icon, "icon"),
            (strategy.has_sort_order, "sort_order"),
        ):
            if present:
                group_by.append(f"{c}.{column}")
        on = [f"{p}.{source.fk_column} = {c}.id"] + visibility
        order_by = ([f"{c}.sort_order ASC"] if strategy.has_sort_order else []) + [f"{c}.name ASC"]
        sql = "\n".join([
            f"SELECT {c}.id AS id, {c}.name AS name, {slug} AS slug, {color} AS color, "
            f"{icon} AS icon, {sort_order} AS sort_order, COUNT({p}.id) AS usage_count",
            f"FROM {source.table} {c}",
            f"LEFT JOIN {descriptor.table} {p} ON " + " AND ".join(on),
            "GROUP BY " + ", ".join(group_by),
            "ORDER BY " + ", ".join(order_by),
        ])
        return BuiltQuery(text=sql, params=params)

    column = f"{p}.{source.legacy_column}"
    conditions = [f"{column} IS NOT NULL", f"{column} <> ''"] + visibility
    sql = "\n".join([
        f"SELECT {column} AS name, {slug_expression(column)} AS slug, COUNT(*) AS usage_count",
        f"FROM {descriptor.table} {p}",
        "WHERE " + " AND ".join(conditions),
        f"GROUP BY {column}",
        "ORDER BY usage_count DESC, name ASC",
    ])
    return BuiltQuery(text=sql, params=params)
