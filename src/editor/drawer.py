"""The editor drawer: open, edit, discard, and submit one record."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sitecms.content.lifecycle import prepare_payload
from sitecms.content.repository import ContentRepository, Row
from sitecms.content.schemas import clean_form
from sitecms.editor.autosave import DEFAULT_DELAY as AUTOSAVE_DELAY
from sitecms.editor.autosave import AutosaveScheduler
from sitecms.editor.form import FormState
from sitecms.editor.notify import Notifier
from sitecms.editor.uniqueness import DEFAULT_DELAY as SLUG_CHECK_DELAY
from sitecms.editor.uniqueness import SlugUniquenessChecker
from sitecms.errors import RecordNotFound, RepositoryError, SlugTaken, ValidationFailed

if TYPE_CHECKING:
    from sitecms.auth.session import Session
    from sitecms.config import EditorConfig

logger = logging.getLogger(__name__)

Confirm = Callable[[], bool | Awaitable[bool]]

SLUG_TAKEN_MESSAGE = "This slug is already in use"


class DrawerState(StrEnum):
    CLOSED = "closed"
    LOADING = "loading"
    EDITING = "editing"
    CONFIRM_DISCARD = "confirm_discard"
    SUBMITTING = "submitting"


class EditorDrawer:
    """Orchestrates the form, slug checker, and autosave for one collection.

    State machine::

        closed -> loading (existing records) -> editing -> submitting -> closed
                                                 |  ^
                                                 v  |
                                           confirm_discard

    Closing a dirty form asks ``confirm``; without a callback the discard is
    refused and the record stays open.  Autosave is held while the user
    decides, and submit waits for any autosave already sent so the
    submitted values are the ones stored last.  A fetch that resolves after
    the drawer was closed or reopened is ignored.
    """

    def __init__(
        self,
        repository: ContentRepository,
        session: Session | None = None,
        *,
        notifier: Notifier | None = None,
        confirm: Confirm | None = None,
        on_saved: Callable[[Row], None] | None = None,
        slug_check_delay: float = SLUG_CHECK_DELAY,
        autosave_delay: float = AUTOSAVE_DELAY,
        autosave: bool = True,
    ) -> None:
        self.repository = repository
        self.spec = repository.spec
        self.session = session
        self.notifier = notifier or Notifier()
        self._confirm = confirm
        self._on_saved = on_saved
        self.state = DrawerState.CLOSED
        self.record_id: str | None = None
        self._loaded: Row | None = None
        self._generation = 0

        self.form = FormState(self.spec)
        self.slug_checker = SlugUniquenessChecker(repository, delay=slug_check_delay)
        self.autosave: AutosaveScheduler | None = None
        if autosave:
            self.autosave = AutosaveScheduler(
                repository,
                self.form,
                delay=autosave_delay,
                prepare=self._prepare,
                on_saved=self._autosaved,
            )
        self.form.subscribe(self._field_changed)

    @classmethod
    def from_config(
        cls,
        repository: ContentRepository,
        session: Session | None,
        config: EditorConfig,
        **kwargs: Any,
    ) -> EditorDrawer:
        """Build a drawer with the [editor] delays and autosave switch."""
        return cls(
            repository,
            session,
            slug_check_delay=config.slug_check_delay,
            autosave_delay=config.autosave_delay,
            autosave=config.autosave,
            **kwargs,
        )

    @property
    def user_id(self) -> str | None:
        return self.session.user_id if self.session is not None else None

    @property
    def is_open(self) -> bool:
        return self.state is not DrawerState.CLOSED

    # ── Open / close ─────────────────────────────────────────────

    async def open(self, record_id: str | None = None) -> bool:
        """Open a blank form, or load an existing record into it.

        Returns False when the record could not be loaded (the drawer stays
        closed and an error notification is raised).
        """
        self._shutdown()
        self._generation += 1
        generation = self._generation
        if record_id is None:
            self.form.reset()
            self.state = DrawerState.EDITING
            return True

        self.state = DrawerState.LOADING
        try:
            row = await asyncio.to_thread(self.repository.get, record_id)
        except RecordNotFound:
            if generation == self._generation:
                self.notifier.error(f"{self.spec.label} not found")
                self.state = DrawerState.CLOSED
            return False
        except RepositoryError as exc:
            if generation == self._generation:
                self.notifier.error(f"Failed to load {self.spec.label.lower()}: {exc}")
                self.state = DrawerState.CLOSED
            return False
        if generation != self._generation:
            logger.debug("Ignoring late load of %s %s", self.spec.collection, record_id)
            return False

        self.record_id = record_id
        self._loaded = row
        self.form.load(self.spec.form_values(row), existing=True)
        self.slug_checker.reset(exclude_id=record_id)
        if self.autosave is not None:
            self.autosave.bind(record_id)
        self.state = DrawerState.EDITING
        return True

    async def close(self) -> bool:
        """Close the drawer; a dirty form needs confirmation first.

        Returns True when the drawer ended up closed.
        """
        if self.state is DrawerState.CLOSED:
            return True
        if self.state is DrawerState.SUBMITTING:
            return False
        if self.state is DrawerState.EDITING and self.form.dirty:
            self.state = DrawerState.CONFIRM_DISCARD
            # Nothing may be persisted while the user decides
            await self._settle_autosave()
            if not await self._ask_confirm():
                self.state = DrawerState.EDITING
                if self.autosave is not None:
                    self.autosave.notify()
                return False
            logger.info("Discarded unsaved changes to %s %s", self.spec.collection, self.record_id or "(new)")
        self._shutdown()
        self._generation += 1
        return True

    # ── Editing ──────────────────────────────────────────────────

    def change(self, field: str, value: Any) -> None:
        self._require_editing()
        self.form.set(field, value)

    def set_slug(self, value: str) -> None:
        self._require_editing()
        self.form.set_slug(value)

    def reset_slug(self) -> None:
        self._require_editing()
        self.form.reset_slug()

    # ── Submit ───────────────────────────────────────────────────

    async def submit(self) -> Row | None:
        """Validate, re-check the slug, and persist.

        Invalid forms never reach the backend: errors stay on ``form.errors``
        and None is returned.  On success the drawer closes and the stored
        row is returned.
        """
        self._require_editing()
        self.state = DrawerState.SUBMITTING
        await self._settle_autosave()
        if self.form.validate():
            self.state = DrawerState.EDITING
            return None
        try:
            values = clean_form(self.spec, self.form.values)
        except ValidationFailed as exc:
            self.form.errors = dict(exc.errors)
            self.state = DrawerState.EDITING
            return None

        try:
            if self.spec.has_slug and not await self.slug_checker.check_now(values[self.spec.slug_field]):
                self.form.errors[self.spec.slug_field] = SLUG_TAKEN_MESSAGE
                self.notifier.error(f"A {self.spec.label.lower()} with this slug already exists")
                self.state = DrawerState.EDITING
                return None
            payload = prepare_payload(self.spec, values, existing=self._loaded, user_id=self.user_id)
            if self.record_id is None:
                row = await asyncio.to_thread(self.repository.create, payload)
                verb = "created"
            else:
                row = await asyncio.to_thread(self.repository.update, self.record_id, payload)
                verb = "updated"
        except SlugTaken:
            # Lost a race with another writer between the check and the write
            self.form.errors[self.spec.slug_field] = SLUG_TAKEN_MESSAGE
            self.notifier.error(f"A {self.spec.label.lower()} with this slug already exists")
            self.state = DrawerState.EDITING
            return None
        except RepositoryError as exc:
            self.notifier.error(f"Failed to save {self.spec.label.lower()}: {exc}")
            self.state = DrawerState.EDITING
            return None

        self.notifier.success(f"{self.spec.label} {verb}")
        self._shutdown()
        self._generation += 1
        if self._on_saved is not None:
            self._on_saved(row)
        return row

    async def wait(self) -> None:
        """Let pending slug checks and autosaves run to completion."""
        await self.slug_checker.wait()
        if self.autosave is not None:
            await self.autosave.wait()

    # ── Private helpers ──────────────────────────────────────────

    def _require_editing(self) -> None:
        if self.state is not DrawerState.EDITING:
            raise RuntimeError(f"Editor is {self.state.value}, not editing")

    def _field_changed(self, field: str, value: Any) -> None:
        if self.spec.has_slug and field == self.spec.slug_field:
            self.slug_checker.request(value)

    def _prepare(self, values: dict[str, Any]) -> dict[str, Any]:
        return prepare_payload(self.spec, values, existing=self._loaded, user_id=self.user_id)

    def _autosaved(self, row: Row) -> None:
        if self._loaded is not None and row.get("id") == self.record_id:
            self._loaded = row

    async def _settle_autosave(self) -> None:
        """Drop the pending autosave and let one already sent land first."""
        if self.autosave is None:
            return
        self.autosave.cancel()
        await self.autosave.wait()

    async def _ask_confirm(self) -> bool:
        if self._confirm is None:
            return False
        answer = self._confirm()
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    def _shutdown(self) -> None:
        self.slug_checker.reset()
        if self.autosave is not None:
            self.autosave.bind(None)
        self.form.reset()
        self.record_id = None
        self._loaded = None
        self.state = DrawerState.CLOSED
