"""Admin list views: search, filter, paginate, bulk toggles, CSV export.

Everything here works on plain row lists fetched once from a repository;
filtering and paging are in-memory operations over that snapshot.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from collections.abc import Iterable
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from sitecms.content.entities import CONTENT_ENTITIES, EntitySpec, EntityType, get_entity
from sitecms.content.lifecycle import prepare_payload, utc_now
from sitecms.content.models import ContentStatus
from sitecms.content.repository import Backend, ContentRepository, Row
from sitecms.errors import RepositoryError

logger = logging.getLogger(__name__)


class ListQuery(BaseModel):
    """Search text, equality filters, and the requested page."""

    search: str = ""
    filters: dict[str, str] = Field(default_factory=dict)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=500)
    include_deleted: bool = False


class Page(BaseModel):
    items: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


class BulkAction(StrEnum):
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    PAUSE = "pause"
    RESUME = "resume"
    ARCHIVE = "archive"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"


class BulkResult(BaseModel):
    """Ids that changed and, per failed id, the backend's message."""

    changed: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)


_STATUS_ACTIONS: dict[BulkAction, ContentStatus] = {
    BulkAction.PUBLISH: ContentStatus.PUBLISHED,
    BulkAction.UNPUBLISH: ContentStatus.DRAFT,
    BulkAction.PAUSE: ContentStatus.PAUSED,
    BulkAction.RESUME: ContentStatus.PUBLISHED,
    BulkAction.ARCHIVE: ContentStatus.ARCHIVED,
}

_ACTIVE_ACTIONS: dict[BulkAction, bool] = {
    BulkAction.ACTIVATE: True,
    BulkAction.PUBLISH: True,
    BulkAction.RESUME: True,
    BulkAction.DEACTIVATE: False,
    BulkAction.UNPUBLISH: False,
    BulkAction.PAUSE: False,
}


# ---------------------------------------------------------------------------
# Search / filter / paginate
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "; ".join(_as_text(v) for v in value)
    return str(value)


def filter_rows(rows: Iterable[Row], spec: EntitySpec, query: ListQuery) -> list[Row]:
    """Apply case-insensitive search over the collection's search fields and
    exact-match filters over its filter fields.  Blank filters are ignored.

    Raises:
        ValueError: If a filter names a field the collection cannot filter on.
    """
    unknown = [f for f in query.filters if f not in spec.filter_fields]
    if unknown:
        raise ValueError(f"Cannot filter {spec.collection} by: {', '.join(unknown)}")

    needle = query.search.strip().lower()
    active = {k: v.lower() for k, v in query.filters.items() if v != ""}
    result = []
    for row in rows:
        if needle and not any(needle in _as_text(row.get(f)).lower() for f in spec.search_fields):
            continue
        if any(_as_text(row.get(f)).lower() != v for f, v in active.items()):
            continue
        result.append(row)
    return result


def paginate(rows: list[Row], page: int, page_size: int) -> Page:
    """Slice one page; a page past the end is clamped to the last page.

    Raises:
        ValueError: If ``page_size`` is below 1.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")
    total = len(rows)
    last = max(1, math.ceil(total / page_size))
    page = min(max(page, 1), last)
    start = (page - 1) * page_size
    return Page(items=rows[start:start + page_size], total=total, page=page, page_size=page_size)


def list_records(repository: ContentRepository, query: ListQuery | None = None) -> Page:
    query = query or ListQuery()
    rows = repository.list(include_deleted=query.include_deleted)
    matched = filter_rows(rows, repository.spec, query)
    return paginate(matched, query.page, query.page_size)


# ---------------------------------------------------------------------------
# Bulk actions
# ---------------------------------------------------------------------------


def bulk_values(entity: EntitySpec | EntityType | str, action: BulkAction | str) -> dict[str, Any]:
    """Translate a bulk action into the column update for this collection.

    Raises:
        ValueError: If the collection has no such transition.
    """
    spec = get_entity(entity)
    action = BulkAction(action)
    if spec.status_field == "status":
        status = _STATUS_ACTIONS.get(action)
        if status is not None and status in spec.statuses:
            return {"status": status.value}
    elif spec.status_field == "is_active":
        if action in _ACTIVE_ACTIONS:
            return {"is_active": _ACTIVE_ACTIONS[action]}
    raise ValueError(f"{action.value!r} is not available for {spec.collection}")


def bulk_apply(
    repository: ContentRepository,
    ids: Iterable[str],
    action: BulkAction | str,
    *,
    user_id: str | None,
) -> BulkResult:
    """Apply one bulk action to many rows; failures are collected, not raised."""
    values = bulk_values(repository.spec, action)
    result = BulkResult()
    for record_id in ids:
        try:
            existing = repository.get(record_id)
            payload = prepare_payload(repository.spec, values, existing=existing, user_id=user_id)
            repository.update(record_id, payload)
        except RepositoryError as exc:
            logger.warning("Bulk %s failed for %s %s: %s", action, repository.collection, record_id, exc)
            result.failed[record_id] = str(exc)
        else:
            result.changed.append(record_id)
    return result


def bulk_delete(repository: ContentRepository, ids: Iterable[str]) -> BulkResult:
    """Soft-delete (or hard-delete, per collection) many rows."""
    result = BulkResult()
    stamp = utc_now()
    for record_id in ids:
        try:
            repository.soft_delete(record_id, stamp)
        except RepositoryError as exc:
            logger.warning("Delete failed for %s %s: %s", repository.collection, record_id, exc)
            result.failed[record_id] = str(exc)
        else:
            result.changed.append(record_id)
    return result


# ---------------------------------------------------------------------------
# Export / dashboard
# ---------------------------------------------------------------------------


def export_csv(rows: Iterable[Row], columns: Iterable[str]) -> str:
    """Serialize rows to CSV text with a header row; list cells are ``; ``-joined."""
    columns = list(columns)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_as_text(row.get(c)) for c in columns])
    return buffer.getvalue()


def write_csv(rows: Iterable[Row], columns: Iterable[str], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_csv(rows, columns), encoding="utf-8")
    logger.info("Wrote %s", path)
    return path


def collection_counts(
    backend: Backend,
    entities: Iterable[EntityType] = (*CONTENT_ENTITIES, EntityType.BLOG_CATEGORIES),
) -> dict[str, int]:
    """Totals per collection for the dashboard."""
    return {get_entity(e).collection: backend.repository(e).count() for e in entities}
