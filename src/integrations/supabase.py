"""Supabase backend: content repositories and auth over supabase-py.

Usage::

    backend = SupabaseBackend.from_config(config.supabase)
    services = backend.repository("services")
    services.find_by_slug("seo-audits")

Credentials come from ``[supabase]`` in the config or the ``SUPABASE_URL`` /
``SUPABASE_KEY`` environment variables (a ``.env`` file works too).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic_core import to_jsonable_python
from supabase import Client, create_client

from sitecms.auth.provider import AuthProvider
from sitecms.auth.session import Session
from sitecms.content.entities import EntitySpec, EntityType, get_entity
from sitecms.content.models import AppRole
from sitecms.content.repository import ContentRepository, Row
from sitecms.errors import AuthError, RecordNotFound, RepositoryError, SlugTaken

if TYPE_CHECKING:
    from sitecms.config import SupabaseConfig

logger = logging.getLogger(__name__)

# Postgres unique_violation, raised by the (collection, slug) index
UNIQUE_VIOLATION = "23505"

# Alias to avoid shadowing by SupabaseRepository.list
_list = list


def create_supabase_client(url: str, key: str) -> Client:
    """Build a client, failing early with a readable message when unconfigured."""
    if not url or not key:
        raise RepositoryError(
            "Supabase credentials required. Set SUPABASE_URL and SUPABASE_KEY "
            "(or [supabase] url/key in .sitecms.toml)."
        )
    try:
        return create_client(url, key)
    except Exception as exc:
        raise RepositoryError(f"Failed to create Supabase client: {exc}") from exc


class SupabaseRepository(ContentRepository):
    """One table, addressed through PostgREST query chains."""

    def __init__(self, client: Client, spec: EntitySpec) -> None:
        super().__init__(spec)
        self._client = client

    def _table(self) -> Any:
        return self._client.table(self.collection)

    def _execute(self, action: str, build: Callable[[], Any], *, slug: str | None = None) -> Any:
        try:
            return build().execute()
        except Exception as exc:
            if slug and getattr(exc, "code", None) == UNIQUE_VIOLATION:
                raise SlugTaken(self.collection, slug) from exc
            raise RepositoryError(f"{self.collection}: {action} failed: {exc}") from exc

    def _slug_of(self, payload: Row) -> str | None:
        return payload.get(self.spec.slug_field) if self.spec.has_slug else None

    def list(self, *, include_deleted: bool = False) -> _list[Row]:
        def build() -> Any:
            query = self._table().select("*")
            if self.spec.soft_delete and not include_deleted:
                query = query.is_("deleted_at", "null")
            return query.order(self.spec.order_by, desc=self.spec.descending)

        return _list(self._execute("list", build).data or [])

    def get(self, record_id: str) -> Row:
        result = self._execute(
            "get", lambda: self._table().select("*").eq("id", record_id).limit(1)
        )
        if not result.data:
            raise RecordNotFound(self.collection, record_id)
        return result.data[0]

    def create(self, values: Row) -> Row:
        payload = to_jsonable_python(values)
        result = self._execute(
            "insert", lambda: self._table().insert(payload), slug=self._slug_of(payload)
        )
        if not result.data:
            raise RepositoryError(f"{self.collection}: insert returned no row")
        row = result.data[0]
        logger.info("Created %s %s", self.collection, row.get("id"))
        return row

    def update(self, record_id: str, values: Row) -> Row:
        payload = to_jsonable_python(values)
        result = self._execute(
            "update", lambda: self._table().update(payload).eq("id", record_id),
            slug=self._slug_of(payload),
        )
        if not result.data:
            raise RecordNotFound(self.collection, record_id)
        logger.debug("Updated %s %s", self.collection, record_id)
        return result.data[0]

    def delete(self, record_id: str) -> None:
        result = self._execute("delete", lambda: self._table().delete().eq("id", record_id))
        if not result.data:
            raise RecordNotFound(self.collection, record_id)
        logger.info("Deleted %s %s", self.collection, record_id)

    def find_by_slug(self, slug: str, *, exclude_id: str | None = None) -> _list[Row]:
        if self.spec.slug_field is None:
            return []
        slug_field = self.spec.slug_field

        def build() -> Any:
            query = self._table().select("id").eq(slug_field, slug)
            if exclude_id is not None:
                query = query.neq("id", exclude_id)
            return query

        return _list(self._execute("slug lookup", build).data or [])

    def count(self) -> int:
        def build() -> Any:
            query = self._table().select("id", count="exact", head=True)
            if self.spec.soft_delete:
                query = query.is_("deleted_at", "null")
            return query

        return self._execute("count", build).count or 0


class SupabaseBackend:
    """Hands out one :class:`SupabaseRepository` per collection."""

    def __init__(self, client: Client) -> None:
        self.client = client

    @classmethod
    def from_config(cls, config: SupabaseConfig) -> SupabaseBackend:
        return cls(create_supabase_client(config.url, config.key))

    def repository(self, entity: EntitySpec | EntityType | str) -> SupabaseRepository:
        return SupabaseRepository(self.client, get_entity(entity))


class SupabaseAuthProvider(AuthProvider):
    """Email/password auth plus role lookup in ``user_roles``."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def sign_in(self, email: str, password: str) -> Session:
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            raise AuthError(f"Sign-in failed: {exc}") from exc
        return _session_from(response)

    def sign_up(self, email: str, password: str) -> Session | None:
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except Exception as exc:
            raise AuthError(f"Sign-up failed: {exc}") from exc
        if response.session is None:
            logger.info("Sign-up for %s awaits email confirmation", email)
            return None
        return _session_from(response)

    def sign_out(self, session: Session) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as exc:
            raise AuthError(f"Sign-out failed: {exc}") from exc

    def request_password_reset(self, email: str, *, redirect_to: str | None = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            self.client.auth.reset_password_for_email(email, options)
        except Exception as exc:
            raise AuthError(f"Password reset failed: {exc}") from exc

    def update_password(self, session: Session, password: str) -> None:
        try:
            self.client.auth.update_user({"password": password})
        except Exception as exc:
            raise AuthError(f"Password update failed: {exc}") from exc

    def fetch_role(self, user_id: str) -> AppRole | None:
        try:
            result = (
                self.client.table(EntityType.USER_ROLES.value)
                .select("role")
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as exc:
            raise AuthError(f"Role lookup failed: {exc}") from exc
        roles = {AppRole(row["role"]) for row in result.data or []}
        return next((role for role in AppRole if role in roles), None)


def _session_from(response: Any) -> Session:
    user = response.user
    if user is None:
        raise AuthError("Sign-in returned no user")
    tokens = response.session
    return Session(
        user_id=str(user.id),
        email=user.email or "",
        access_token=getattr(tokens, "access_token", "") or "",
        refresh_token=getattr(tokens, "refresh_token", "") or "",
    )
