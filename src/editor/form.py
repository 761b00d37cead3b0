"""In-memory form state for one record while its editor is open."""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

from sitecms.content.entities import EntitySpec
from sitecms.content.schemas import validate_field, validate_form
from sitecms.content.slugs import slugify

Listener = Callable[[str, Any], None]


class FormState:
    """Field values, dirty tracking, slug derivation, and validation errors.

    While ``slug_manually_edited`` is false the slug mirrors the slugified
    title on every title change.  Typing into the slug (``set_slug``)
    stops that until ``reset_slug``.  Records loaded from the backend start
    with derivation off so renaming a published record never moves its URL.
    """

    def __init__(self, spec: EntitySpec) -> None:
        self.spec = spec
        self.values: dict[str, Any] = spec.defaults()
        self._baseline: dict[str, Any] = copy.deepcopy(self.values)
        self.slug_manually_edited = False
        self.errors: dict[str, str] = {}
        self._listeners: list[Listener] = []

    # ── State ────────────────────────────────────────────────────

    @property
    def dirty(self) -> bool:
        return self.values != self._baseline

    def get(self, field: str) -> Any:
        return self.values[field]

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.values)

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener(field, value)`` after every effective change."""
        self._listeners.append(listener)

    # ── Edits ────────────────────────────────────────────────────

    def set(self, field: str, value: Any) -> None:
        """Change one field.

        Raises:
            KeyError: If the form has no such field.
        """
        if field not in self.values:
            raise KeyError(field)
        if field == self.spec.slug_field:
            self.set_slug(value)
            return
        self._assign(field, value)
        if field == self.spec.title_field and self._derives_slug():
            self._assign(self.spec.slug_field, slugify(value or ""))

    def set_slug(self, value: str) -> None:
        if not self.spec.has_slug:
            raise KeyError("slug")
        self.slug_manually_edited = True
        self._assign(self.spec.slug_field, slugify(value or ""))

    def reset_slug(self) -> None:
        """Return to auto-derivation and re-derive from the current title."""
        if not self.spec.has_slug:
            raise KeyError("slug")
        self.slug_manually_edited = False
        self._assign(self.spec.slug_field, slugify(self.values.get(self.spec.title_field) or ""))

    def add_item(self, field: str, item: Any) -> None:
        items = list(self._list_field(field))
        items.append(item)
        self._assign(field, items)

    def remove_item(self, field: str, index: int) -> None:
        items = list(self._list_field(field))
        del items[index]
        self._assign(field, items)

    def move_item(self, field: str, source: int, target: int) -> None:
        """Reorder a list field by moving one entry (drag-and-drop equivalent)."""
        items = list(self._list_field(field))
        items.insert(target, items.pop(source))
        self._assign(field, items)

    # ── Lifecycle ────────────────────────────────────────────────

    def load(self, values: dict[str, Any], *, existing: bool) -> None:
        """Hydrate from stored or default values; the result is not dirty."""
        merged = self.spec.defaults()
        merged.update({k: v for k, v in values.items() if k in merged})
        self.values = copy.deepcopy(merged)
        self._baseline = copy.deepcopy(merged)
        self.errors = {}
        self.slug_manually_edited = existing and self.spec.has_slug

    def reset(self) -> None:
        self.load({}, existing=False)

    def mark_saved(self, snapshot: dict[str, Any]) -> None:
        """Move the baseline to what was just persisted."""
        self._baseline = copy.deepcopy(snapshot)

    # ── Validation ───────────────────────────────────────────────

    def validate(self) -> dict[str, str]:
        self.errors = validate_form(self.spec, self.values)
        return dict(self.errors)

    def validate_field(self, field: str) -> str | None:
        message = validate_field(self.spec, field, self.values)
        if message is None:
            self.errors.pop(field, None)
        else:
            self.errors[field] = message
        return message

    # ── Private helpers ──────────────────────────────────────────

    def _derives_slug(self) -> bool:
        return self.spec.has_slug and not self.slug_manually_edited

    def _list_field(self, field: str) -> list[Any]:
        value = self.values[field]
        if not isinstance(value, list):
            raise TypeError(f"{field} is not a list field")
        return value

    def _assign(self, field: str, value: Any) -> None:
        if self.values.get(field) == value:
            return
        self.values[field] = value
        self.errors.pop(field, None)
        for listener in self._listeners:
            listener(field, value)
