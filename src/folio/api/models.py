"""Read models returned by the API layer.

``PublicView`` is what unauthenticated pages may see. ``AdminView`` is the
complete record; it serializes every field under both its storage key
(snake_case) and its presentation key (camelCase) because admin screens and
admin JSON routes each read a different one.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, model_serializer
from pydantic.alias_generators import to_camel

from ..database.association_repo import AssociationDetail

T = TypeVar("T")


class NotFound:
    """Sentinel for a single-item lookup that matched no row."""

    _instance: Optional["NotFound"] = None

    def __new__(cls) -> "NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()


@dataclass
class ReadResult(Generic[T]):
    """Envelope for admin reads: failures carry a short message, never raw errors."""
    success: bool
    data: Optional[T] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "ReadResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> "ReadResult[T]":
        return cls(success=False, message=message)

    @property
    def found(self) -> bool:
        return self.success and self.data is not NOT_FOUND

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "message": self.message}
        if self.data is NOT_FOUND:
            return {"success": True, "data": None, "message": "Not found"}
        data: Any = self.data
        if isinstance(data, list):
            data = [item.model_dump() if isinstance(item, BaseModel) else item for item in data]
        elif isinstance(data, BaseModel):
            data = data.model_dump()
        return {"success": True, "data": data}


class PublicView(BaseModel):
    id: int
    title: str
    slug: str
    description: str = ""
    image: str = ""
    category: str
    category_slug: str = ""
    category_color: str
    project_type: Optional[str] = None  # portfolio only
    project_type_color: Optional[str] = None  # portfolio only
    tags: List[str] = []
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AdminView(BaseModel):
    id: int
    kind: str
    title: str
    slug: str
    description: str = ""
    content: str = ""
    excerpt: str = ""
    status: str = ""
    is_active: bool = True
    is_featured: bool = False
    featured_image: str = ""
    featured_image_alt: str = ""
    project_url: str = ""
    github_url: str = ""
    meta_title: str = ""
    meta_description: str = ""
    meta_keywords: str = ""
    sort_order: int = 0
    author_id: Optional[int] = None
    author_name: Optional[str] = None
    category_id: Optional[int] = None
    category_name: str = ""
    category_slug: str = ""
    category_color: str = ""
    category_icon: Optional[str] = None
    project_type_id: Optional[int] = None
    project_type_name: Optional[str] = None
    project_type_slug: Optional[str] = None
    project_type_color: Optional[str] = None
    tag_ids: List[int] = []
    tag_names: List[str] = []
    tag_slugs: List[str] = []
    tags: List[AssociationDetail] = []
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_serializer(mode="wrap")
    def serialize_dual_keys(self, handler) -> Dict[str, Any]:
        data = handler(self)
        for key in list(data):
            presentation_key = to_camel(key)
            if presentation_key != key:
                data[presentation_key] = data[key]
        return data


class ClassificationDetail(BaseModel):
    id: int
    name: str
    slug: str = ""
    color: str
    icon: Optional[str] = None
    sort_order: int = 0
    usage_count: int = 0
