"""Exception hierarchy shared by the repository, editor, and auth layers."""

from __future__ import annotations


class SiteCMSError(Exception):
    """Base error for sitecms."""


class RepositoryError(SiteCMSError):
    """A backend read or write failed (network, auth, constraint)."""


class RecordNotFound(RepositoryError):
    """No record with the requested identifier exists."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{collection}: no record with id {record_id!r}")
        self.collection = collection
        self.record_id = record_id


class ValidationFailed(SiteCMSError):
    """Form values failed schema validation.

    ``errors`` maps field names to a single user-facing message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        summary = "; ".join(f"{k}: {v}" for k, v in errors.items())
        super().__init__(f"Validation failed ({summary})")
        self.errors = errors


class SlugTaken(RepositoryError):
    """A write would give two records in one collection the same slug."""

    def __init__(self, collection: str, slug: str) -> None:
        super().__init__(f"A {collection} record with slug {slug!r} already exists")
        self.collection = collection
        self.slug = slug


class AuthError(SiteCMSError):
    """The auth provider rejected a sign-in, sign-up, or password call."""


class NotAuthenticated(AuthError):
    """No active session."""


class AccessDenied(AuthError):
    """The current role may not perform the action."""
