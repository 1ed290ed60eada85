"""Current (fully migrated) content schema.

The read layer never assumes these tables or columns exist; this module
describes the newest shape for local databases and tests. Deployed
databases may be any earlier subset of it.
"""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    email = Column(String(255), nullable=False, unique=True)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    color = Column(String(20))
    icon = Column(String(50))
    sort_order = Column(Integer, nullable=False, default=0)


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    excerpt = Column(Text)
    content = Column(Text)
    status = Column(String(20), nullable=False, default="DRAFT")  # DRAFT, PUBLISHED, ARCHIVED
    featured_image = Column(String(500))
    featured_image_alt = Column(String(255))
    is_featured = Column(Boolean, default=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    meta_title = Column(String(255))
    meta_description = Column(Text)
    meta_keywords = Column(String(255))
    published_at = Column(String)  # ISO 8601 string
    created_at = Column(String)  # ISO 8601 string
    updated_at = Column(String)  # ISO 8601 string


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    color = Column(String(20))


class PostTag(Base):
    __tablename__ = "post_tags"

    post_id = Column(Integer, primary_key=True)
    tag_id = Column(Integer, primary_key=True)  # no FK: tags may be deleted under it


class PortfolioCategory(Base):
    __tablename__ = "portfolio_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    icon = Column(String(50))
    color = Column(String(20))
    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, nullable=False, default=0)


class ProjectType(Base):
    __tablename__ = "project_types"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    color = Column(String(20))
    sort_order = Column(Integer, nullable=False, default=0)


class PortfolioItem(Base):
    __tablename__ = "portfolio"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text)
    content = Column(Text)
    featured_image = Column(String(500))
    featured_image_alt = Column(String(255))
    is_active = Column(Boolean, default=True)
    is_featured = Column(Boolean, default=False)
    category_id = Column(Integer, ForeignKey("portfolio_categories.id"), nullable=True, index=True)
    project_type_id = Column(Integer, ForeignKey("project_types.id"), nullable=True, index=True)
    project_url = Column(String(500))
    github_url = Column(String(500))
    meta_title = Column(String(255))
    meta_description = Column(Text)
    meta_keywords = Column(String(255))
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(String)  # ISO 8601 string
    updated_at = Column(String)  # ISO 8601 string


class Technology(Base):
    __tablename__ = "technologies"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    color = Column(String(20))


class PortfolioTechnology(Base):
    __tablename__ = "portfolio_technologies"

    portfolio_id = Column(Integer, primary_key=True)
    technology_id = Column(Integer, primary_key=True)


def create_all(database_url: str) -> None:
    engine = create_engine(database_url)
    Base.metadata.create_all(engine)
