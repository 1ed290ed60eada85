"""Schema inspector: cached knowledge of which optional tables/columns exist.

The content schema grew one additive change at a time, so a deployed database
may lack any optional column or table. The inspector asks the catalog once per
table (two batched queries per introspection, whatever the number of tables)
and caches the answer for its own lifetime. Create one inspector per process
and pass it to the repository/API functions; tests create a fresh one per
case or call ``reset()``.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from folio.database.entities import (
    ClassificationSource,
    EntityDescriptor,
    EntityKind,
    get_descriptor,
)
from folio.database.query_monitor import execute_with_monitoring
from folio.errors import QueryExecutionError, SchemaIntrospectionError
from folio.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TableFeatureMap:
    table: str
    exists: bool
    columns: FrozenSet[str] = frozenset()

    def has(self, column: str) -> bool:
        return column in self.columns


def _optional(fallback: str):
    return field(default=False, metadata={"fallback": fallback})


@dataclass(frozen=True)
class ContentColumns:
    """Presence flags for the optional columns of a content table.

    Each flag's metadata holds the SQL literal selected under the same alias
    when the column is missing.
    """
    description: bool = _optional("''")
    content: bool = _optional("''")
    excerpt: bool = _optional("''")
    status: bool = _optional("'PUBLISHED'")
    is_active: bool = _optional("TRUE")
    is_featured: bool = _optional("FALSE")
    featured_image: bool = _optional("NULL")
    featured_image_alt: bool = _optional("NULL")
    project_url: bool = _optional("NULL")
    github_url: bool = _optional("NULL")
    meta_title: bool = _optional("NULL")
    meta_description: bool = _optional("NULL")
    meta_keywords: bool = _optional("NULL")
    sort_order: bool = _optional("0")
    author_id: bool = _optional("NULL")
    category_id: bool = _optional("NULL")
    project_type_id: bool = _optional("NULL")
    created_at: bool = _optional("NULL")
    updated_at: bool = _optional("NULL")
    # Selected as COALESCE(published_at, created_at); no single literal fallback
    published_at: bool = field(default=False, metadata={"computed": True})

    @classmethod
    def from_columns(cls, columns: Iterable[str]) -> "ContentColumns":
        present = set(columns)
        return cls(**{f.name: f.name in present for f in fields(cls)})


@dataclass(frozen=True)
class NormalizedClassification:
    """Classification table and foreign key both exist: LEFT JOIN it."""
    source: ClassificationSource
    has_slug: bool = True
    has_color: bool = False
    has_icon: bool = False
    has_sort_order: bool = False


@dataclass(frozen=True)
class LegacyClassification:
    """Only the free-text column exists: it is the name, the slug is derived."""
    source: ClassificationSource


@dataclass(frozen=True)
class DefaultClassification:
    """Neither exists: constant default name and color."""
    source: ClassificationSource


ClassificationStrategy = Union[NormalizedClassification, LegacyClassification, DefaultClassification]


@dataclass(frozen=True)
class ContentFeatures:
    """Everything the query builder and resolver need to know about one kind."""
    descriptor: EntityDescriptor
    columns: ContentColumns
    primary: ClassificationStrategy
    secondary: Optional[ClassificationStrategy]
    author_join: bool = False
    has_junction: bool = False
    has_association_detail: bool = False
    association_has_slug: bool = False
    association_has_color: bool = False

    @property
    def kind(self) -> EntityKind:
        return self.descriptor.kind


def _safe(table: str, *columns: str) -> TableFeatureMap:
    return TableFeatureMap(table=table, exists=True, columns=frozenset(columns))


# Used when the catalog cannot be read. Only columns every deployed schema
# version has carried are assumed present.
SAFE_DEFAULT_MAPS: Dict[str, TableFeatureMap] = {
    "posts": _safe(
        "posts", "id", "title", "slug", "content", "excerpt", "status",
        "featured_image", "is_featured", "meta_title", "meta_description",
        "meta_keywords", "author_id", "category_id", "created_at", "updated_at",
    ),
    "categories": _safe("categories", "id", "name", "slug"),
    "portfolio": _safe(
        "portfolio", "id", "title", "slug", "description", "featured_image",
        "featured_image_alt", "is_active", "is_featured", "category_id",
        "project_type_id", "project_url", "meta_title", "meta_description",
        "meta_keywords", "created_at", "updated_at",
    ),
    "portfolio_categories": _safe("portfolio_categories", "id", "name", "slug", "icon"),
    "project_types": _safe("project_types", "id", "name", "slug"),
    "portfolio_technologies": _safe("portfolio_technologies", "portfolio_id", "technology_id"),
    "technologies": _safe("technologies", "id", "name", "slug", "color"),
}


def resolve_classification(
    source: ClassificationSource,
    main: TableFeatureMap,
    table: TableFeatureMap,
) -> ClassificationStrategy:
    """Pick the normalized / legacy / default strategy for one classification."""
    if table.exists and main.has(source.fk_column):
        return NormalizedClassification(
            source=source,
            has_slug=table.has("slug"),
            has_color=table.has("color"),
            has_icon=table.has("icon"),
            has_sort_order=table.has("sort_order"),
        )
    if main.has(source.legacy_column):
        return LegacyClassification(source=source)
    return DefaultClassification(source=source)


_SQLITE_TABLES = (
    "SELECT name FROM sqlite_master "
    "WHERE type IN ('table', 'view') AND name IN :tables"
)
_SQLITE_COLUMNS = (
    "SELECT m.name AS table_name, p.name AS column_name "
    "FROM sqlite_master AS m, pragma_table_info(m.name) AS p "
    "WHERE m.type IN ('table', 'view') AND m.name IN :tables"
)
_INFO_SCHEMA_TABLES = (
    "SELECT table_name FROM information_schema.tables "
    "WHERE table_schema = {schema} AND table_name IN :tables"
)
_INFO_SCHEMA_COLUMNS = (
    "SELECT table_name, column_name FROM information_schema.columns "
    "WHERE table_schema = {schema} AND table_name IN :tables"
)
_SCHEMA_FUNCTIONS = {
    "mysql": "DATABASE()",
    "mariadb": "DATABASE()",
    "postgresql": "current_schema()",
}


class SchemaInspector:
    """Lazily populated, process-lifetime cache of table feature maps."""

    def __init__(self) -> None:
        self._maps: Dict[str, TableFeatureMap] = {}
        self._features: Dict[EntityKind, ContentFeatures] = {}

    def reset(self) -> None:
        """Forget everything; the next lookup introspects again."""
        self._maps.clear()
        self._features.clear()

    def get_feature_map(self, session: Session, table: str) -> TableFeatureMap:
        cached = self._maps.get(table)
        if cached is not None:
            return cached
        return self._introspect(session, [table])[table]

    def table_exists(self, session: Session, table: str) -> bool:
        return self.get_feature_map(session, table).exists

    def content_features(self, session: Session, kind: EntityKind | str) -> ContentFeatures:
        """Typed feature flags and classification strategies for one content kind."""
        kind = EntityKind(kind)
        cached = self._features.get(kind)
        if cached is not None:
            return cached

        descriptor = get_descriptor(kind)
        maps = dict(self._maps)
        missing = [t for t in descriptor.tables if t not in maps]
        fully_introspected = True
        if missing:
            fresh = self._introspect(session, missing)
            maps.update(fresh)
            fully_introspected = all(t in self._maps for t in missing)

        features = self._build_features(descriptor, maps)
        if fully_introspected:
            self._features[kind] = features
        return features

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        """Cached maps as plain data (for diagnostics)."""
        return {
            name: {"exists": m.exists, "columns": sorted(m.columns)}
            for name, m in sorted(self._maps.items())
        }

    def _build_features(
        self,
        descriptor: EntityDescriptor,
        maps: Dict[str, TableFeatureMap],
    ) -> ContentFeatures:
        main = maps[descriptor.table]
        association = descriptor.association
        junction = maps[association.junction_table]
        detail = maps[association.detail_table]

        secondary = None
        if descriptor.secondary is not None:
            secondary = resolve_classification(
                descriptor.secondary, main, maps[descriptor.secondary.table]
            )

        author_join = False
        if descriptor.author_table:
            author = maps[descriptor.author_table]
            author_join = author.exists and author.has("name") and main.has("author_id")

        return ContentFeatures(
            descriptor=descriptor,
            columns=ContentColumns.from_columns(main.columns),
            primary=resolve_classification(descriptor.primary, main, maps[descriptor.primary.table]),
            secondary=secondary,
            author_join=author_join,
            has_junction=junction.exists,
            has_association_detail=detail.exists,
            association_has_slug=detail.has("slug"),
            association_has_color=detail.has("color"),
        )

    def _introspect(self, session: Session, tables: Sequence[str]) -> Dict[str, TableFeatureMap]:
        """Two catalog round trips for any number of tables; never raises."""
        try:
            # Savepoint keeps a failed catalog read from aborting the caller's transaction
            with session.begin_nested():
                existing = self._query_existing_tables(session, tables)
                columns = self._query_columns(session, sorted(existing)) if existing else {}
        except (SchemaIntrospectionError, SQLAlchemyError) as e:
            logger.warning(
                f"Schema introspection failed for {', '.join(tables)}; "
                f"using safe defaults: {e}"
            )
            # Not cached: the next call retries the catalog
            return {
                name: SAFE_DEFAULT_MAPS.get(name, TableFeatureMap(table=name, exists=False))
                for name in tables
            }

        result: Dict[str, TableFeatureMap] = {}
        for name in tables:
            result[name] = TableFeatureMap(
                table=name,
                exists=name in existing,
                columns=frozenset(columns.get(name, ())),
            )
        self._maps.update(result)
        logger.debug(f"Introspected tables: {', '.join(f'{n}={m.exists}' for n, m in result.items())}")
        return result

    def _catalog_sql(self, session: Session) -> tuple[str, str]:
        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            return _SQLITE_TABLES, _SQLITE_COLUMNS
        schema_fn = _SCHEMA_FUNCTIONS.get(dialect)
        if schema_fn is None:
            raise SchemaIntrospectionError(f"Unsupported dialect for introspection: {dialect}")
        return (
            _INFO_SCHEMA_TABLES.format(schema=schema_fn),
            _INFO_SCHEMA_COLUMNS.format(schema=schema_fn),
        )

    def _run_catalog_query(self, session: Session, sql: str, tables: Sequence[str], caller: str):
        statement = text(sql).bindparams(bindparam("tables", expanding=True))
        try:
            return execute_with_monitoring(
                session, statement, {"tables": list(tables)}, caller, failure_level=logging.DEBUG
            ).all()
        except QueryExecutionError as e:
            raise SchemaIntrospectionError(str(e.__cause__ or e)) from e

    def _query_existing_tables(self, session: Session, tables: Sequence[str]) -> set:
        tables_sql, _ = self._catalog_sql(session)
        rows = self._run_catalog_query(session, tables_sql, tables, "inspector.existing_tables")
        return {row[0] for row in rows}

    def _query_columns(self, session: Session, tables: Sequence[str]) -> Dict[str, List[str]]:
        _, columns_sql = self._catalog_sql(session)
        rows = self._run_catalog_query(session, columns_sql, tables, "inspector.columns")
        columns: Dict[str, List[str]] = {}
        for row in rows:
            columns.setdefault(row[0], []).append(row[1])
        return columns
