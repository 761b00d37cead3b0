"""Content domain models: pure Pydantic v2 row types.

One model per backend collection.  Rows come back from the backend with
nullable columns, so every model maps ``null`` onto its field default
before validation; a null ``status`` reads as draft and a null array as
an empty list.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticUndefined


class ContentStatus(StrEnum):
    """Publication status of a content record."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    PAUSED = "paused"
    SCHEDULED = "scheduled"


class AppRole(StrEnum):
    """Closed set of admin roles stored in ``user_roles``."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EDITOR = "editor"
    AUTHOR = "author"
    VIEWER = "viewer"


class _Row(BaseModel):
    """Base for backend rows: ignores unknown columns, nulls fall back to defaults."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if name not in cleaned or cleaned[name] is not None:
                continue
            if field.default is not PydanticUndefined and field.default is not None:
                del cleaned[name]
            elif field.default_factory is not None:
                del cleaned[name]
        return cleaned


class AuditFields(_Row):
    """Identifier plus created/updated stamps common to every collection."""

    id: str
    created_at: datetime | None = None
    created_by: str | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None


class SEOFields(BaseModel):
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: list[str] = Field(default_factory=list)
    seo_og_image: str | None = None


class PublishableRecord(AuditFields, SEOFields):
    """A slugged, status-tracked, soft-deletable record."""

    title: str
    slug: str
    status: ContentStatus = ContentStatus.DRAFT
    order: int = 0
    published_at: datetime | None = None
    deleted_at: datetime | None = None


class ServiceFeature(BaseModel):
    title: str
    description: str = ""


class ServiceRecord(PublishableRecord):
    category: str | None = None
    short_desc: str | None = None
    content_richtext: str | None = None
    icon_url: str | None = None
    hero_image: str | None = None
    price_from: float | None = None
    features: list[ServiceFeature] = Field(default_factory=list)
    gallery_urls: list[str] = Field(default_factory=list)


class ProjectRecord(PublishableRecord):
    category: str | None = None
    client: str | None = None
    location: str | None = None
    short_desc: str | None = None
    body_richtext: str | None = None
    cover_image: str | None = None
    gallery_urls: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    started_on: date | None = None
    completed_on: date | None = None
    url: str | None = None


class BlogPostRecord(PublishableRecord):
    excerpt: str | None = None
    content_richtext: str | None = None
    cover_image: str | None = None
    category_id: str | None = None
    author_id: str | None = None


class PricingPlanRecord(AuditFields):
    """Pricing plans are toggled active/inactive rather than published."""

    title: str
    slug: str
    subtitle: str | None = None
    price: str
    features_included: list[str] = Field(default_factory=list)
    features_excluded: list[str] = Field(default_factory=list)
    cta_label: str = "Get Started"
    cta_url: str | None = None
    is_featured: bool = False
    is_active: bool = True
    order: int = 0


class FAQRecord(AuditFields):
    question: str
    answer_rich: str
    category: str | None = None
    is_active: bool = True
    order: int = 0


class CategoryRecord(AuditFields):
    """Blog category, referenced by ``BlogPostRecord.category_id``."""

    name: str
    slug: str
    description: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None


class UserRoleRecord(AuditFields):
    user_id: str
    role: AppRole
