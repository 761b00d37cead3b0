"""Narrow persistence interface the editor and list views depend on.

A repository is bound to one collection.  Rows travel as plain dicts with
JSON-ready values, the shape the hosted backend returns, so editor code
never needs to know which backend it is talking to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol

from sitecms.content.entities import EntitySpec, EntityType

Row = dict[str, Any]

# Alias to avoid shadowing by ContentRepository.list
_list = list


class ContentRepository(ABC):
    """CRUD plus slug lookups for a single collection."""

    def __init__(self, spec: EntitySpec) -> None:
        self.spec = spec

    @property
    def collection(self) -> str:
        return self.spec.collection

    @abstractmethod
    def list(self, *, include_deleted: bool = False) -> _list[Row]:
        """Return rows in the collection's default order.

        Soft-deleted rows are left out unless ``include_deleted`` is set.
        """

    @abstractmethod
    def get(self, record_id: str) -> Row:
        """Return one row.

        Raises:
            RecordNotFound: If no row has this id.
        """

    @abstractmethod
    def create(self, values: Row) -> Row:
        """Insert a row and return it with its generated ``id``."""

    @abstractmethod
    def update(self, record_id: str, values: Row) -> Row:
        """Apply a partial update and return the stored row."""

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove a row permanently."""

    @abstractmethod
    def find_by_slug(self, slug: str, *, exclude_id: str | None = None) -> _list[Row]:
        """Return rows using ``slug`` other than ``exclude_id``.

        Soft-deleted rows count: the backend's unique constraint still covers them.
        """

    def soft_delete(self, record_id: str, deleted_at: str) -> None:
        """Hide a row from listings by stamping ``deleted_at``.

        Collections without soft delete fall through to a hard delete.
        """
        if not self.spec.soft_delete:
            self.delete(record_id)
            return
        self.update(record_id, {"deleted_at": deleted_at})

    def slug_exists(self, slug: str, *, exclude_id: str | None = None) -> bool:
        return bool(self.find_by_slug(slug, exclude_id=exclude_id))

    def count(self) -> int:
        return len(self.list())


class Backend(Protocol):
    """Anything that can hand out a repository per collection."""

    def repository(self, entity: EntitySpec | EntityType | str) -> ContentRepository: ...


def sort_rows(rows: _list[Row], spec: EntitySpec) -> _list[Row]:
    """Order rows by the collection's default key, nulls last."""
    key = spec.order_by
    present = [r for r in rows if r.get(key) is not None]
    missing = [r for r in rows if r.get(key) is None]
    present.sort(key=lambda r: r[key], reverse=spec.descending)
    return present + missing
