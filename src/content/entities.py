"""Registry describing each backend collection the admin panel edits."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from sitecms.content.models import (
    BlogPostRecord,
    CategoryRecord,
    ContentStatus,
    FAQRecord,
    PricingPlanRecord,
    ProjectRecord,
    ServiceRecord,
    UserRoleRecord,
)
from sitecms.content.schemas import (
    BLOG_STATUSES,
    PROJECT_STATUSES,
    SERVICE_STATUSES,
    BlogPostForm,
    CategoryForm,
    FAQForm,
    PricingPlanForm,
    ProjectForm,
    ServiceForm,
)


class EntityType(StrEnum):
    """Backend collection names."""

    SERVICES = "services"
    PROJECTS = "projects"
    BLOG_POSTS = "blog_posts"
    BLOG_CATEGORIES = "blog_categories"
    PRICING_PLANS = "pricing_plans"
    FAQ = "faq"
    USER_ROLES = "user_roles"


@dataclass(frozen=True)
class EntitySpec:
    """How one collection is shaped, edited, listed, and exported.

    ``status_field`` is ``"status"`` for publishable content, ``"is_active"``
    for collections that are simply switched on and off, or None.
    """

    type: EntityType
    label: str
    record: type[BaseModel]
    form: type[BaseModel] | None
    title_field: str = "title"
    slug_field: str | None = "slug"
    status_field: str | None = "status"
    statuses: tuple[ContentStatus, ...] = ()
    soft_delete: bool = False
    order_by: str = "updated_at"
    descending: bool = True
    search_fields: tuple[str, ...] = ("title", "slug")
    filter_fields: tuple[str, ...] = ("status",)
    csv_columns: tuple[str, ...] = ("id", "title", "slug", "status", "updated_at")

    @property
    def collection(self) -> str:
        return self.type.value

    @property
    def has_slug(self) -> bool:
        return self.slug_field is not None

    def defaults(self) -> dict[str, Any]:
        """Default form values for a new record."""
        if self.form is None:
            return {}
        return {
            name: to_jsonable_python(field.get_default(call_default_factory=True))
            for name, field in self.form.model_fields.items()
        }

    def form_values(self, row: dict[str, Any]) -> dict[str, Any]:
        """Project a stored row onto the form's fields.

        Missing or null columns take the form default, so a hydrated form
        compares equal to its baseline until the user changes something.
        """
        values = self.defaults()
        for name in values:
            if row.get(name) is not None:
                values[name] = to_jsonable_python(row[name])
        return values


_ENTITIES: dict[EntityType, EntitySpec] = {
    EntityType.SERVICES: EntitySpec(
        type=EntityType.SERVICES,
        label="Service",
        record=ServiceRecord,
        form=ServiceForm,
        statuses=SERVICE_STATUSES,
        soft_delete=True,
        search_fields=("title", "slug", "category"),
        filter_fields=("status", "category"),
        csv_columns=("id", "title", "slug", "category", "status", "published_at", "updated_at"),
    ),
    EntityType.PROJECTS: EntitySpec(
        type=EntityType.PROJECTS,
        label="Project",
        record=ProjectRecord,
        form=ProjectForm,
        statuses=PROJECT_STATUSES,
        soft_delete=True,
        search_fields=("title", "slug", "client", "category", "location"),
        filter_fields=("status", "category"),
        csv_columns=(
            "id", "title", "slug", "client", "category", "location",
            "status", "published_at", "updated_at",
        ),
    ),
    EntityType.BLOG_POSTS: EntitySpec(
        type=EntityType.BLOG_POSTS,
        label="Blog post",
        record=BlogPostRecord,
        form=BlogPostForm,
        statuses=BLOG_STATUSES,
        soft_delete=True,
        search_fields=("title", "slug", "excerpt"),
        filter_fields=("status", "category_id"),
        csv_columns=("id", "title", "slug", "category_id", "status", "published_at", "updated_at"),
    ),
    EntityType.BLOG_CATEGORIES: EntitySpec(
        type=EntityType.BLOG_CATEGORIES,
        label="Category",
        record=CategoryRecord,
        form=CategoryForm,
        title_field="name",
        status_field=None,
        order_by="name",
        descending=False,
        search_fields=("name", "slug"),
        filter_fields=(),
        csv_columns=("id", "name", "slug", "description"),
    ),
    EntityType.PRICING_PLANS: EntitySpec(
        type=EntityType.PRICING_PLANS,
        label="Pricing plan",
        record=PricingPlanRecord,
        form=PricingPlanForm,
        status_field="is_active",
        order_by="order",
        descending=False,
        search_fields=("title", "slug", "price"),
        filter_fields=("is_active", "is_featured"),
        csv_columns=("id", "title", "slug", "price", "is_featured", "is_active", "order"),
    ),
    EntityType.FAQ: EntitySpec(
        type=EntityType.FAQ,
        label="FAQ",
        record=FAQRecord,
        form=FAQForm,
        title_field="question",
        slug_field=None,
        status_field="is_active",
        order_by="order",
        descending=False,
        search_fields=("question", "answer_rich", "category"),
        filter_fields=("category", "is_active"),
        csv_columns=("id", "question", "category", "is_active", "order"),
    ),
    EntityType.USER_ROLES: EntitySpec(
        type=EntityType.USER_ROLES,
        label="User role",
        record=UserRoleRecord,
        form=None,
        title_field="user_id",
        slug_field=None,
        status_field=None,
        order_by="created_at",
        search_fields=("user_id", "role"),
        filter_fields=("role",),
        csv_columns=("id", "user_id", "role", "created_at"),
    ),
}

CONTENT_ENTITIES = (
    EntityType.SERVICES,
    EntityType.PROJECTS,
    EntityType.BLOG_POSTS,
    EntityType.PRICING_PLANS,
    EntityType.FAQ,
)


def get_entity(entity: EntitySpec | EntityType | str) -> EntitySpec:
    """Resolve a collection name or EntityType to its spec.

    Raises:
        ValueError: If the name is not a known collection.
    """
    if isinstance(entity, EntitySpec):
        return entity
    try:
        return _ENTITIES[EntityType(entity)]
    except ValueError:
        raise ValueError(f"Unknown collection: {entity!r}") from None


def all_entities() -> list[EntitySpec]:
    return list(_ENTITIES.values())
