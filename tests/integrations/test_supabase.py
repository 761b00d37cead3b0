"""Tests for the Supabase repositories and auth provider (client mocked)."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sitecms.config import SupabaseConfig
from sitecms.content.models import AppRole
from sitecms.errors import AuthError, RecordNotFound, RepositoryError, SlugTaken
from sitecms.integrations.supabase import (
    SupabaseAuthProvider,
    SupabaseBackend,
    SupabaseRepository,
    create_supabase_client,
)

_BUILDERS = ("select", "eq", "neq", "is_", "order", "limit", "insert", "update", "delete")


class _ApiError(Exception):
    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


def _make_client(data: list | None = None, count: int | None = None, error: Exception | None = None):
    """Client whose query builder chains back to one mock."""
    query = MagicMock()
    for name in _BUILDERS:
        getattr(query, name).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = SimpleNamespace(data=data, count=count)
    client = MagicMock()
    client.table.return_value = query
    return client, query


def _repo(collection: str = "services", **kwargs: object) -> tuple[SupabaseRepository, MagicMock, MagicMock]:
    client, query = _make_client(**kwargs)
    return SupabaseBackend(client).repository(collection), client, query


class TestClientFactory:
    def test_missing_credentials(self):
        with pytest.raises(RepositoryError, match="SUPABASE_URL"):
            create_supabase_client("", "")

    def test_from_config_checks_credentials(self):
        with pytest.raises(RepositoryError):
            SupabaseBackend.from_config(SupabaseConfig())


class TestRepository:
    def test_list_hides_soft_deleted(self):
        repo, client, query = _repo(data=[{"id": "s1"}])
        assert repo.list() == [{"id": "s1"}]
        client.table.assert_called_with("services")
        query.is_.assert_called_once_with("deleted_at", "null")
        query.order.assert_called_once_with("updated_at", desc=True)

    def test_list_including_deleted(self):
        repo, _, query = _repo(data=[])
        assert repo.list(include_deleted=True) == []
        query.is_.assert_not_called()

    def test_collections_without_soft_delete(self):
        repo, _, query = _repo("faq", data=[])
        repo.list()
        query.is_.assert_not_called()

    def test_get(self):
        repo, _, query = _repo(data=[{"id": "s1", "title": "SEO"}])
        assert repo.get("s1")["title"] == "SEO"
        query.eq.assert_called_with("id", "s1")

    def test_get_missing(self):
        repo, _, _ = _repo(data=[])
        with pytest.raises(RecordNotFound):
            repo.get("nope")

    def test_create_sends_json_values(self):
        repo, _, query = _repo("projects", data=[{"id": "p1"}])
        repo.create({"title": "Office Fitout", "slug": "office-fitout", "completed_on": date(2024, 3, 1)})
        query.insert.assert_called_once_with(
            {"title": "Office Fitout", "slug": "office-fitout", "completed_on": "2024-03-01"}
        )

    def test_duplicate_slug_becomes_slug_taken(self):
        error = _ApiError("duplicate key value violates unique constraint", code="23505")
        repo, _, _ = _repo(error=error)
        with pytest.raises(SlugTaken) as exc_info:
            repo.create({"title": "SEO", "slug": "seo"})
        assert exc_info.value.slug == "seo"

    def test_other_failures_wrapped(self):
        repo, _, _ = _repo(error=_ApiError("permission denied for table services", code="42501"))
        with pytest.raises(RepositoryError, match="update failed: permission denied") as exc_info:
            repo.update("s1", {"title": "SEO", "slug": "seo"})
        assert not isinstance(exc_info.value, SlugTaken)

    def test_update_missing_row(self):
        repo, _, _ = _repo(data=[])
        with pytest.raises(RecordNotFound):
            repo.update("nope", {"title": "SEO"})

    def test_delete(self):
        repo, _, query = _repo(data=[{"id": "s1"}])
        repo.delete("s1")
        query.delete.assert_called_once_with()
        query.eq.assert_called_with("id", "s1")

    def test_find_by_slug_excludes_self(self):
        repo, _, query = _repo(data=[])
        assert not repo.slug_exists("seo", exclude_id="s1")
        query.eq.assert_called_with("slug", "seo")
        query.neq.assert_called_once_with("id", "s1")

    def test_find_by_slug_without_slug_field(self):
        repo, client, _ = _repo("faq", data=[{"id": "f1"}])
        assert repo.find_by_slug("anything") == []
        client.table.assert_not_called()

    def test_count(self):
        repo, _, query = _repo(data=None, count=7)
        assert repo.count() == 7
        query.select.assert_called_once_with("id", count="exact", head=True)


def _auth_response(user_id: str = "u1", with_session: bool = True) -> SimpleNamespace:
    user = SimpleNamespace(id=user_id, email="editor@example.com")
    tokens = SimpleNamespace(access_token="access", refresh_token="refresh") if with_session else None
    return SimpleNamespace(user=user, session=tokens)


class TestAuthProvider:
    def test_sign_in(self):
        client = MagicMock()
        client.auth.sign_in_with_password.return_value = _auth_response()
        session = SupabaseAuthProvider(client).sign_in("editor@example.com", "secret123")
        assert session.user_id == "u1"
        assert session.access_token == "access"
        assert session.role is None

    def test_sign_in_rejected(self):
        client = MagicMock()
        client.auth.sign_in_with_password.side_effect = Exception("Invalid login credentials")
        with pytest.raises(AuthError, match="Invalid login credentials"):
            SupabaseAuthProvider(client).sign_in("editor@example.com", "wrong")

    def test_sign_up_pending_confirmation(self):
        client = MagicMock()
        client.auth.sign_up.return_value = _auth_response(with_session=False)
        assert SupabaseAuthProvider(client).sign_up("new@example.com", "secret123") is None

    def test_password_reset_redirect(self):
        client = MagicMock()
        SupabaseAuthProvider(client).request_password_reset(
            "editor@example.com", redirect_to="https://example.com/reset"
        )
        client.auth.reset_password_for_email.assert_called_once_with(
            "editor@example.com", {"redirect_to": "https://example.com/reset"}
        )

    def test_fetch_role_prefers_highest(self):
        client, query = _make_client(data=[{"role": "author"}, {"role": "super_admin"}])
        assert SupabaseAuthProvider(client).fetch_role("u1") is AppRole.SUPER_ADMIN
        client.table.assert_called_once_with("user_roles")
        query.eq.assert_called_once_with("user_id", "u1")

    def test_fetch_role_none_assigned(self):
        client, _ = _make_client(data=[])
        assert SupabaseAuthProvider(client).fetch_role("u1") is None
