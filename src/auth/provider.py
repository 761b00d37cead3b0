"""Authentication provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sitecms.auth.session import Session
from sitecms.content.models import AppRole


class AuthProvider(ABC):
    """Identity operations the admin tooling needs from its backend.

    Implementations raise :class:`~sitecms.errors.AuthError` on rejected
    credentials or remote failures.
    """

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Session:
        """Exchange credentials for a session (role not yet resolved)."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Session | None:
        """Register an account; None when email confirmation is pending."""

    @abstractmethod
    def sign_out(self, session: Session) -> None:
        """Revoke the session's tokens."""

    @abstractmethod
    def request_password_reset(self, email: str, *, redirect_to: str | None = None) -> None:
        """Send a password-reset email."""

    @abstractmethod
    def update_password(self, session: Session, password: str) -> None:
        """Set a new password for the signed-in user."""

    @abstractmethod
    def fetch_role(self, user_id: str) -> AppRole | None:
        """Return the user's role, or None when no role is assigned."""
