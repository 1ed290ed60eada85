"""Static description of the tables each content kind reads from.

These are the names the schema may contain, not a promise that it does:
the inspector decides at runtime which of them exist.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class EntityKind(str, Enum):
    POST = "post"
    PORTFOLIO = "portfolio"


@dataclass(frozen=True)
class ClassificationSource:
    """Where a classification may live: a normalized table or a legacy text column."""
    prefix: str  # alias prefix: category_name, project_type_color, ...
    table: str
    fk_column: str
    legacy_column: str
    join_alias: str
    default_name: str
    default_color: str
    default_icon: Optional[str] = None


@dataclass(frozen=True)
class AssociationSource:
    junction_table: str
    parent_column: str
    association_column: str
    detail_table: str
    default_color: str = "#6B7280"


@dataclass(frozen=True)
class EntityDescriptor:
    kind: EntityKind
    table: str
    primary: ClassificationSource
    secondary: Optional[ClassificationSource]
    association: AssociationSource
    author_table: Optional[str] = None
    default_author: str = "Admin"

    @property
    def tables(self) -> Tuple[str, ...]:
        """Every table this kind may touch, main table first."""
        names = [self.table, self.primary.table]
        if self.secondary is not None:
            names.append(self.secondary.table)
        names.extend([self.association.junction_table, self.association.detail_table])
        if self.author_table:
            names.append(self.author_table)
        return tuple(names)


POST = EntityDescriptor(
    kind=EntityKind.POST,
    table="posts",
    primary=ClassificationSource(
        prefix="category",
        table="categories",
        fk_column="category_id",
        legacy_column="category",
        join_alias="c",
        default_name="General",
        default_color="#dc2626",
        default_icon="Folder",
    ),
    secondary=None,
    association=AssociationSource(
        junction_table="post_tags",
        parent_column="post_id",
        association_column="tag_id",
        detail_table="tags",
    ),
    author_table="users",
)

PORTFOLIO = EntityDescriptor(
    kind=EntityKind.PORTFOLIO,
    table="portfolio",
    primary=ClassificationSource(
        prefix="category",
        table="portfolio_categories",
        fk_column="category_id",
        legacy_column="category",
        join_alias="c",
        default_name="General",
        default_color="#dc2626",
        default_icon="Folder",
    ),
    secondary=ClassificationSource(
        prefix="project_type",
        table="project_types",
        fk_column="project_type_id",
        legacy_column="project_type",
        join_alias="pt",
        default_name="",
        default_color="#6b7280",
    ),
    association=AssociationSource(
        junction_table="portfolio_technologies",
        parent_column="portfolio_id",
        association_column="technology_id",
        detail_table="technologies",
    ),
)

DESCRIPTORS: Dict[EntityKind, EntityDescriptor] = {
    EntityKind.POST: POST,
    EntityKind.PORTFOLIO: PORTFOLIO,
}


def get_descriptor(kind: EntityKind | str) -> EntityDescriptor:
    return DESCRIPTORS[EntityKind(kind)]
