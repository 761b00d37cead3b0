"""Debounced background saving of an existing record's draft."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sitecms.content.repository import ContentRepository, Row
from sitecms.content.schemas import clean_form
from sitecms.editor.debounce import Debouncer
from sitecms.editor.form import FormState
from sitecms.errors import RepositoryError, ValidationFailed

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.8


class SaveStatus(StrEnum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


def time_ago(then: datetime, now: datetime | None = None) -> str:
    seconds = int(((now or datetime.now(tz=UTC)) - then).total_seconds())
    if seconds < 5:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    return f"{seconds // 3600}h ago"


class AutosaveScheduler:
    """Persists form changes after a quiet window, for existing records only.

    Every effective field change restarts the window.  When it elapses the
    current snapshot is validated and written with ``update``; snapshots
    that fail validation are skipped silently (errors surface on submit).
    A result that arrives after a newer change was scheduled is dropped,
    so ``status`` and ``last_saved`` always describe the latest attempt.

    ``prepare`` turns clean form values into the update payload (audit
    stamps, publish rules); ``on_saved`` receives every stored row, even one
    whose result is then dropped as stale.
    """

    def __init__(
        self,
        repository: ContentRepository,
        form: FormState,
        *,
        delay: float = DEFAULT_DELAY,
        prepare: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
        on_saved: Callable[[Row], None] | None = None,
    ) -> None:
        self._repository = repository
        self._form = form
        self._prepare = prepare
        self._on_saved = on_saved
        self._debouncer = Debouncer(delay, name=f"autosave:{repository.collection}")
        self.record_id: str | None = None
        self.status = SaveStatus.IDLE
        self.last_saved: datetime | None = None
        self.last_error: str | None = None
        self._in_flight = 0
        form.subscribe(lambda _field, _value: self.notify())

    @property
    def delay(self) -> float:
        return self._debouncer.delay

    @property
    def in_flight(self) -> bool:
        """True while an update is on its way to the backend."""
        return self._in_flight > 0

    def bind(self, record_id: str | None) -> None:
        """Target another record (None disables saving)."""
        self._debouncer.cancel()
        self.record_id = record_id
        self.status = SaveStatus.IDLE
        self.last_saved = None
        self.last_error = None

    def notify(self) -> None:
        if self.record_id is None or not self._form.dirty:
            return
        self._debouncer.schedule(self._save)

    def cancel(self) -> None:
        """Drop the pending save; an update already sent still completes."""
        self._debouncer.cancel()
        self._settle()

    async def wait(self) -> None:
        await self._debouncer.wait()

    def describe(self, now: datetime | None = None) -> str:
        """Short indicator text for the editor header."""
        if self.status is SaveStatus.SAVING:
            return "Saving..."
        if self.status is SaveStatus.ERROR:
            return "Save failed"
        if self.status is SaveStatus.SAVED and self.last_saved is not None:
            return f"Saved • {time_ago(self.last_saved, now)}"
        return ""

    async def _save(self, token: int) -> None:
        record_id = self.record_id
        if record_id is None:
            return
        snapshot = self._form.snapshot()
        try:
            values = clean_form(self._repository.spec, snapshot)
        except ValidationFailed as exc:
            logger.debug("Skipping autosave of %s: %s", record_id, exc)
            self._settle()
            return
        if self._prepare is not None:
            values = self._prepare(values)
        self.status = SaveStatus.SAVING
        self._in_flight += 1
        try:
            row = await asyncio.to_thread(self._repository.update, record_id, values)
        except RepositoryError as exc:
            if self._debouncer.is_current(token):
                logger.warning("Autosave of %s %s failed: %s", self._repository.collection, record_id, exc)
                self.status = SaveStatus.ERROR
                self.last_error = str(exc)
            return
        finally:
            self._in_flight -= 1
            self._settle()
        if self._on_saved is not None:
            self._on_saved(row)
        if not self._debouncer.is_current(token):
            logger.debug("Discarding stale autosave result for %s", record_id)
            return
        self._form.mark_saved(snapshot)
        self.status = SaveStatus.SAVED
        self.last_saved = datetime.now(tz=UTC)
        self.last_error = None
        logger.debug("Autosaved %s %s", self._repository.collection, record_id)

    def _settle(self) -> None:
        # "saving" only while an update is outstanding
        if self._in_flight == 0 and self.status is SaveStatus.SAVING:
            self.status = SaveStatus.SAVED if self.last_saved is not None else SaveStatus.IDLE
