"""JSON-backed content store.

Persists every collection in a single JSON file, loaded on init and saved
after every write.  Without a path the store lives purely in memory, which
is what tests and dry runs use.  Rows are validated through the
collection's record model on every write.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from sitecms.content.entities import EntitySpec, EntityType, get_entity
from sitecms.content.repository import ContentRepository, Row, sort_rows
from sitecms.errors import RecordNotFound, RepositoryError, SlugTaken

logger = logging.getLogger(__name__)

STORE_FILENAME = ".sitecms-store.json"

# Alias to avoid shadowing by StoreRepository.list
_list = list


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    collections: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


class ContentStore:
    """All collections in one JSON document.

    Loads the store file on init and saves after every mutation.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._data = self._load()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if self._path is None or not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            self._data.model_dump_json(indent=2),
            encoding="utf-8",
        )

    def rows(self, collection: str) -> _list[Row]:
        return self._data.collections.setdefault(collection, [])

    # ── Public API ───────────────────────────────────────────────

    @property
    def path(self) -> Path | None:
        return self._path

    def repository(self, entity: EntitySpec | EntityType | str) -> StoreRepository:
        """Return a repository bound to one collection of this store."""
        return StoreRepository(self, get_entity(entity))

    def seed(self, entity: EntitySpec | EntityType | str, rows: _list[Row]) -> _list[Row]:
        """Insert rows as-is (ids kept when present); returns the stored rows."""
        repo = self.repository(entity)
        return [repo.create(row) for row in rows]


class StoreRepository(ContentRepository):
    """ContentRepository over one collection of a ContentStore."""

    def __init__(self, store: ContentStore, spec: EntitySpec) -> None:
        super().__init__(spec)
        self._store = store

    def _rows(self) -> _list[Row]:
        return self._store.rows(self.collection)

    def _find(self, record_id: str) -> Row | None:
        for row in self._rows():
            if row.get("id") == record_id:
                return row
        return None

    def _validated(self, row: Row) -> Row:
        try:
            record = self.spec.record.model_validate(row)
        except ValidationError as exc:
            raise RepositoryError(f"{self.collection}: invalid row: {exc}") from exc
        # Keep unknown columns such as deleted_at on collections that lack them.
        return {**row, **record.model_dump(mode="json")}

    def _check_slug(self, row: Row) -> None:
        # Same rule as the unique (collection, slug) index on the hosted backend
        slug = row.get(self.spec.slug_field) if self.spec.has_slug else None
        if slug and self.find_by_slug(slug, exclude_id=row["id"]):
            raise SlugTaken(self.collection, slug)

    def _is_live(self, row: Row) -> bool:
        return not (self.spec.soft_delete and row.get("deleted_at"))

    def list(self, *, include_deleted: bool = False) -> _list[Row]:
        rows = [dict(r) for r in self._rows() if include_deleted or self._is_live(r)]
        return sort_rows(rows, self.spec)

    def get(self, record_id: str) -> Row:
        row = self._find(record_id)
        if row is None:
            raise RecordNotFound(self.collection, record_id)
        return dict(row)

    def create(self, values: Row) -> Row:
        row = dict(values)
        row.setdefault("id", str(uuid.uuid4()))
        if self._find(row["id"]) is not None:
            raise RepositoryError(f"{self.collection}: duplicate id {row['id']!r}")
        stored = self._validated(row)
        self._check_slug(stored)
        self._rows().append(stored)
        self._store._save()
        logger.info("Created %s %s", self.collection, stored["id"])
        return dict(stored)

    def update(self, record_id: str, values: Row) -> Row:
        current = self._find(record_id)
        if current is None:
            raise RecordNotFound(self.collection, record_id)
        stored = self._validated({**current, **values, "id": record_id})
        self._check_slug(stored)
        current.clear()
        current.update(stored)
        self._store._save()
        logger.debug("Updated %s %s (%s)", self.collection, record_id, ", ".join(values))
        return dict(stored)

    def delete(self, record_id: str) -> None:
        rows = self._rows()
        kept = [r for r in rows if r.get("id") != record_id]
        if len(kept) == len(rows):
            raise RecordNotFound(self.collection, record_id)
        rows[:] = kept
        self._store._save()
        logger.info("Deleted %s %s", self.collection, record_id)

    def find_by_slug(self, slug: str, *, exclude_id: str | None = None) -> _list[Row]:
        if self.spec.slug_field is None:
            return []
        field = self.spec.slug_field
        return [
            dict(r)
            for r in self._rows()
            if r.get(field) == slug and r.get("id") != exclude_id
        ]
