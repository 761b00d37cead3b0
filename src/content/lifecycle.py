"""Publication and audit rules applied to every write.

Status transitions are unconstrained.  The one rule is that publishing a
record stamps ``published_at`` when the stored record has none; moving a
record back to draft and publishing it again keeps the first timestamp.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sitecms.content.entities import EntitySpec, EntityType, get_entity
from sitecms.content.models import ContentStatus


def utc_now() -> str:
    return datetime.now(tz=UTC).isoformat()


def apply_publish_rules(
    entity: EntitySpec | EntityType | str,
    values: dict[str, Any],
    existing: dict[str, Any] | None = None,
    *,
    now: str | None = None,
) -> dict[str, Any]:
    """Return ``values`` with ``published_at`` filled in when publishing."""
    spec = get_entity(entity)
    result = dict(values)
    if spec.status_field != "status" or result.get("status") != ContentStatus.PUBLISHED:
        return result
    already = (existing or {}).get("published_at")
    if already:
        result["published_at"] = already
    elif not result.get("published_at"):
        result["published_at"] = now or utc_now()
    return result


def stamp_audit(
    entity: EntitySpec | EntityType | str,
    values: dict[str, Any],
    user_id: str | None,
    *,
    creating: bool,
    now: str | None = None,
) -> dict[str, Any]:
    """Add updated_by/at, plus created_by/at (and author_id for posts) on create."""
    spec = get_entity(entity)
    stamp = now or utc_now()
    result = dict(values)
    result["updated_by"] = user_id
    result["updated_at"] = stamp
    if creating:
        result["created_by"] = user_id
        result["created_at"] = stamp
        if spec.type is EntityType.BLOG_POSTS:
            result.setdefault("author_id", user_id)
    return result


def prepare_payload(
    entity: EntitySpec | EntityType | str,
    values: dict[str, Any],
    *,
    existing: dict[str, Any] | None,
    user_id: str | None,
    now: str | None = None,
) -> dict[str, Any]:
    """Publish rules plus audit stamps; ``existing`` is None for inserts."""
    stamp = now or utc_now()
    payload = apply_publish_rules(entity, values, existing, now=stamp)
    return stamp_audit(entity, payload, user_id, creating=existing is None, now=stamp)
