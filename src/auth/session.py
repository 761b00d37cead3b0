"""Signed-in session state and role gating."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from sitecms.auth.forms import ForgotPasswordForm, LoginForm, ResetPasswordForm
from sitecms.content.models import AppRole
from sitecms.content.schemas import validate_model
from sitecms.errors import AccessDenied, AuthError, NotAuthenticated, ValidationFailed

if TYPE_CHECKING:
    from sitecms.auth.provider import AuthProvider
    from sitecms.content.repository import ContentRepository

logger = logging.getLogger(__name__)

ADMIN_ROLES = (AppRole.SUPER_ADMIN, AppRole.ADMIN)
EDITOR_ROLES = (*ADMIN_ROLES, AppRole.EDITOR, AppRole.AUTHOR)


class Session(BaseModel):
    """Who is acting. ``role`` is None until resolved or when unassigned."""

    user_id: str
    email: str = ""
    role: AppRole | None = None
    access_token: str = ""
    refresh_token: str = ""

    def has_role(self, *roles: AppRole | str) -> bool:
        return self.role is not None and self.role in {AppRole(r) for r in roles}


class SessionManager:
    """Holds the current session between sign-in and sign-out.

    Role checks here only gate what the tooling offers; the backend's
    row-level policies remain the authority on what a user may change.
    """

    def __init__(self, provider: AuthProvider | None = None) -> None:
        self._provider = provider
        self._session: Session | None = None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def current(self) -> Session:
        if self._session is None:
            raise NotAuthenticated("Not signed in")
        return self._session

    def start(self, session: Session) -> Session:
        """Adopt an existing session (e.g. one restored from configuration)."""
        self._session = session
        logger.debug("Session started for %s (%s)", session.user_id, session.role or "no role")
        return session

    def sign_in(self, email: str, password: str) -> Session:
        """Validate credentials, authenticate, and resolve the user's role.

        Raises:
            ValidationFailed: If the email or password is malformed.
            AuthError: If the provider rejects the credentials.
        """
        form, errors = validate_model(LoginForm, {"email": email, "password": password})
        if form is None:
            raise ValidationFailed(errors)
        provider = self._require_provider()
        session = provider.sign_in(form.email, form.password)
        role = provider.fetch_role(session.user_id)
        session = session.model_copy(update={"role": role})
        logger.info("Signed in as %s", session.email or session.user_id)
        return self.start(session)

    def sign_up(self, email: str, password: str) -> Session | None:
        """Register an account; signs in only if no email confirmation is pending.

        Returns None while the provider waits for the address to be confirmed.

        Raises:
            ValidationFailed: If the email or password is malformed.
            AuthError: If the provider rejects the registration.
        """
        form, errors = validate_model(LoginForm, {"email": email, "password": password})
        if form is None:
            raise ValidationFailed(errors)
        provider = self._require_provider()
        session = provider.sign_up(form.email, form.password)
        if session is None:
            logger.info("Signed up %s; awaiting email confirmation", form.email)
            return None
        session = session.model_copy(update={"role": provider.fetch_role(session.user_id)})
        logger.info("Signed up and signed in as %s", session.email or session.user_id)
        return self.start(session)

    def sign_out(self) -> None:
        session = self._session
        self._session = None
        if session is not None and self._provider is not None:
            self._provider.sign_out(session)
        logger.info("Signed out")

    def request_password_reset(self, email: str, *, redirect_to: str | None = None) -> None:
        form, errors = validate_model(ForgotPasswordForm, {"email": email})
        if form is None:
            raise ValidationFailed(errors)
        self._require_provider().request_password_reset(form.email, redirect_to=redirect_to)
        logger.info("Password reset email requested for %s", form.email)

    def reset_password(self, password: str, confirm_password: str) -> None:
        form, errors = validate_model(
            ResetPasswordForm, {"password": password, "confirm_password": confirm_password}
        )
        if form is None:
            raise ValidationFailed(errors)
        self._require_provider().update_password(self.current, form.password)
        logger.info("Password updated for %s", self.current.user_id)

    def require_role(self, *roles: AppRole | str) -> Session:
        """Return the current session if its role is one of ``roles``.

        A user with no assigned role is denied.

        Raises:
            NotAuthenticated: If nobody is signed in.
            AccessDenied: If the role does not match.
        """
        session = self.current
        if not session.has_role(*roles):
            raise AccessDenied(
                f"Role {session.role or 'none'} may not do this "
                f"(requires {', '.join(AppRole(r) for r in roles)})"
            )
        return session

    def _require_provider(self) -> AuthProvider:
        if self._provider is None:
            raise AuthError("No authentication provider configured")
        return self._provider


def lookup_role(repository: ContentRepository, user_id: str) -> AppRole | None:
    """Resolve a role from the ``user_roles`` collection; highest privilege wins."""
    roles = {AppRole(row["role"]) for row in repository.list() if row.get("user_id") == user_id}
    for role in AppRole:
        if role in roles:
            return role
    return None
