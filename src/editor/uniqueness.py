"""Debounced slug uniqueness checks against one collection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum

from sitecms.content.repository import ContentRepository
from sitecms.editor.debounce import Debouncer
from sitecms.errors import RepositoryError

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5


class SlugCheck(StrEnum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    UNIQUE = "unique"
    TAKEN = "taken"


class SlugUniquenessChecker:
    """Tracks whether the slug being typed is free in its collection.

    ``request`` is called on every slug change; the remote query only runs
    once typing pauses for ``delay`` seconds.  The record being edited is
    excluded via ``exclude_id`` so a record never collides with itself.
    A failed query leaves the state unknown; it never blocks the editor.
    """

    def __init__(
        self,
        repository: ContentRepository,
        *,
        delay: float = DEFAULT_DELAY,
        exclude_id: str | None = None,
        on_change: Callable[[SlugCheck], None] | None = None,
    ) -> None:
        self._repository = repository
        self._debouncer = Debouncer(delay, name=f"slug-check:{repository.collection}")
        self._on_change = on_change
        self.exclude_id = exclude_id
        self.state = SlugCheck.UNKNOWN
        self.slug = ""

    @property
    def blocks_submit(self) -> bool:
        return self.state is SlugCheck.TAKEN

    def reset(self, exclude_id: str | None = None) -> None:
        """Forget the last result and retarget at another record."""
        self._debouncer.cancel()
        self.exclude_id = exclude_id
        self._set(SlugCheck.UNKNOWN, "")

    def request(self, slug: str) -> None:
        if not slug:
            self._debouncer.cancel()
            self._set(SlugCheck.UNKNOWN, "")
            return
        self._debouncer.schedule(lambda token: self._check(token, slug))

    async def check_now(self, slug: str) -> bool:
        """Query immediately, bypassing the quiet window.

        Returns True when no other record uses ``slug``.

        Raises:
            RepositoryError: If the backend query fails.
        """
        self._debouncer.cancel()
        self._set(SlugCheck.CHECKING, slug)
        try:
            taken = await asyncio.to_thread(
                self._repository.slug_exists, slug, exclude_id=self.exclude_id
            )
        except RepositoryError:
            self._set(SlugCheck.UNKNOWN, slug)
            raise
        self._set(SlugCheck.TAKEN if taken else SlugCheck.UNIQUE, slug)
        return not taken

    def cancel(self) -> None:
        self._debouncer.cancel()

    async def wait(self) -> None:
        await self._debouncer.wait()

    async def _check(self, token: int, slug: str) -> None:
        self._set(SlugCheck.CHECKING, slug)
        try:
            taken = await asyncio.to_thread(
                self._repository.slug_exists, slug, exclude_id=self.exclude_id
            )
        except RepositoryError as exc:
            if self._debouncer.is_current(token):
                logger.warning("Slug check for %r failed: %s", slug, exc)
                self._set(SlugCheck.UNKNOWN, slug)
            return
        if not self._debouncer.is_current(token):
            logger.debug("Discarding stale slug check for %r", slug)
            return
        self._set(SlugCheck.TAKEN if taken else SlugCheck.UNIQUE, slug)

    def _set(self, state: SlugCheck, slug: str) -> None:
        changed = state is not self.state
        self.state = state
        self.slug = slug
        if changed and self._on_change is not None:
            self._on_change(state)
