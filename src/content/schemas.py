"""Declarative form schemas: one Pydantic model per editable collection.

Each schema is evaluated once on submit (``validate_form`` / ``clean_form``)
and on demand per field (``validate_field``).  Failures come back as a flat
``{field: message}`` map rather than a raised exception, so editors can
show messages inline.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    HttpUrl,
    TypeAdapter,
    ValidationError,
)
from pydantic_core import PydanticCustomError

from sitecms.content.models import ContentStatus, ServiceFeature
from sitecms.errors import ValidationFailed

if TYPE_CHECKING:
    from sitecms.content.entities import EntitySpec, EntityType

SERVICE_STATUSES = (
    ContentStatus.DRAFT,
    ContentStatus.PUBLISHED,
    ContentStatus.ARCHIVED,
    ContentStatus.PAUSED,
)
PROJECT_STATUSES = (ContentStatus.DRAFT, ContentStatus.PUBLISHED, ContentStatus.ARCHIVED)
BLOG_STATUSES = (
    ContentStatus.DRAFT,
    ContentStatus.PUBLISHED,
    ContentStatus.SCHEDULED,
    ContentStatus.ARCHIVED,
)

_HTTP_URL = TypeAdapter(HttpUrl)
_EMAIL = TypeAdapter(EmailStr)

# ---------------------------------------------------------------------------
# Field building blocks
# ---------------------------------------------------------------------------


def _none_to_blank(value: Any) -> Any:
    return "" if value is None else value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def Required(label: str) -> AfterValidator:
    """Reject empty or whitespace-only strings with ``"<label> is required"``."""

    def check(value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("required", "{label} is required", {"label": label})
        return value

    return AfterValidator(check)


def Length(label: str, min_length: int = 0, max_length: int | None = None) -> AfterValidator:
    def check(value: str) -> str:
        if value and len(value) < min_length:
            raise PydanticCustomError(
                "too_short",
                "{label} must be at least {limit} characters",
                {"label": label, "limit": min_length},
            )
        if max_length is not None and len(value) > max_length:
            raise PydanticCustomError(
                "too_long",
                "{label} must be at most {limit} characters",
                {"label": label, "limit": max_length},
            )
        return value

    return AfterValidator(check)


def _check_url(value: str) -> str:
    if not value:
        return value
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        raise PydanticCustomError("url", "Invalid URL") from None
    return value


def _check_uuid(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        uuid.UUID(value)
    except ValueError:
        raise PydanticCustomError("uuid", "Invalid identifier") from None
    return value


def _check_email(value: str) -> str:
    if not value:
        return value
    try:
        _EMAIL.validate_python(value)
    except ValidationError:
        raise PydanticCustomError("email", "Invalid email address") from None
    return value


def StatusIn(allowed: tuple[ContentStatus, ...]) -> AfterValidator:
    def check(value: ContentStatus) -> ContentStatus:
        if value not in allowed:
            raise PydanticCustomError(
                "status",
                "Status must be one of: {allowed}",
                {"allowed": ", ".join(allowed)},
            )
        return value

    return AfterValidator(check)


Text = Annotated[str, BeforeValidator(_none_to_blank)]
Url = Annotated[Text, AfterValidator(_check_url)]
RequiredUrl = Annotated[str, Required("URL"), AfterValidator(_check_url)]
OptionalDate = Annotated[date | None, BeforeValidator(_blank_to_none)]
Email = Annotated[Text, BeforeValidator(lambda v: v.strip() if isinstance(v, str) else v),
                  Required("Email"), AfterValidator(_check_email), Length("Email", max_length=255)]
Password = Annotated[Text, Length("Password", 6, 128)]


class FormModel(BaseModel):
    """Defaults are validated too, so an untouched required field reports."""

    model_config = ConfigDict(extra="ignore", validate_default=True)


# ---------------------------------------------------------------------------
# Content forms
# ---------------------------------------------------------------------------


class ServiceForm(FormModel):
    title: Annotated[Text, Required("Title"), Length("Title", 3, 120)] = ""
    slug: Annotated[Text, Required("Slug")] = ""
    category: Text = ""
    short_desc: Annotated[Text, Length("Excerpt", max_length=280)] = ""
    content_richtext: Text = ""
    icon_url: Url = ""
    hero_image: Url = ""
    price_from: float | None = None
    features: list[ServiceFeature] = []
    gallery_urls: list[RequiredUrl] = []
    status: Annotated[ContentStatus, StatusIn(SERVICE_STATUSES)] = ContentStatus.DRAFT
    seo_title: Annotated[Text, Length("SEO title", max_length=60)] = ""
    seo_description: Annotated[Text, Length("SEO description", max_length=160)] = ""
    order: int = 0


class ProjectForm(FormModel):
    title: Annotated[Text, Required("Title")] = ""
    slug: Annotated[Text, Required("Slug")] = ""
    category: Text = ""
    client: Text = ""
    location: Text = ""
    short_desc: Text = ""
    body_richtext: Text = ""
    cover_image: Url = ""
    gallery_urls: list[RequiredUrl] = []
    tags: list[str] = []
    started_on: OptionalDate = None
    completed_on: OptionalDate = None
    url: Url = ""
    seo_title: Text = ""
    seo_description: Annotated[Text, Length("SEO description", max_length=160)] = ""
    seo_keywords: list[str] = []
    seo_og_image: Url = ""
    status: Annotated[ContentStatus, StatusIn(PROJECT_STATUSES)] = ContentStatus.DRAFT
    order: int = 0


class BlogPostForm(FormModel):
    title: Annotated[Text, Required("Title")] = ""
    slug: Annotated[Text, Required("Slug")] = ""
    excerpt: Text = ""
    content_richtext: Text = ""
    cover_image: Url = ""
    category_id: Annotated[str | None, BeforeValidator(_blank_to_none),
                           AfterValidator(_check_uuid)] = None
    seo_title: Text = ""
    seo_description: Annotated[Text, Length("SEO description", max_length=160)] = ""
    seo_keywords: list[str] = []
    seo_og_image: Url = ""
    status: Annotated[ContentStatus, StatusIn(BLOG_STATUSES)] = ContentStatus.DRAFT


class PricingPlanForm(FormModel):
    title: Annotated[Text, Required("Title")] = ""
    slug: Annotated[Text, Required("Slug")] = ""
    subtitle: Text = ""
    price: Annotated[Text, Required("Price")] = ""
    features_included: list[str] = []
    features_excluded: list[str] = []
    cta_label: Text = "Get Started"
    cta_url: Text = ""
    is_featured: bool = False
    is_active: bool = True
    order: int = 0


class FAQForm(FormModel):
    category: Text = ""
    question: Annotated[Text, Required("Question")] = ""
    answer_rich: Annotated[Text, Required("Answer")] = ""
    order: int = 0
    is_active: bool = True


class CategoryForm(FormModel):
    name: Annotated[Text, Required("Name")] = ""
    slug: Annotated[Text, Required("Slug")] = ""
    description: Text = ""


# ---------------------------------------------------------------------------
# Validation entry points
# ---------------------------------------------------------------------------


def error_map(exc: ValidationError) -> dict[str, str]:
    """Flatten a ValidationError into ``{dotted.field: first message}``."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        key = ".".join(str(part) for part in err["loc"]) or "__root__"
        errors.setdefault(key, err["msg"])
    return errors


def _form_model(entity: EntitySpec | EntityType | str) -> type[BaseModel]:
    from sitecms.content.entities import get_entity

    spec = get_entity(entity)
    if spec.form is None:
        raise ValueError(f"{spec.collection} has no editable form")
    return spec.form


def validate_model(
    model: type[BaseModel], values: Mapping[str, Any]
) -> tuple[BaseModel | None, dict[str, str]]:
    try:
        return model.model_validate(dict(values)), {}
    except ValidationError as exc:
        return None, error_map(exc)


def validate_form(entity: EntitySpec | EntityType | str, values: Mapping[str, Any]) -> dict[str, str]:
    """Validate a whole form and return the error map (empty when valid)."""
    _, errors = validate_model(_form_model(entity), values)
    return errors


def validate_field(
    entity: EntitySpec | EntityType | str, field: str, values: Mapping[str, Any]
) -> str | None:
    """Return the message for one field (or any of its items), or None."""
    errors = validate_form(entity, values)
    if field in errors:
        return errors[field]
    prefix = f"{field}."
    return next((msg for key, msg in errors.items() if key.startswith(prefix)), None)


def clean_form(entity: EntitySpec | EntityType | str, values: Mapping[str, Any]) -> dict[str, Any]:
    """Validate and return JSON-ready values.

    Raises:
        ValidationFailed: With the error map when any field is invalid.
    """
    form, errors = validate_model(_form_model(entity), values)
    if form is None:
        raise ValidationFailed(errors)
    return form.model_dump(mode="json")


