"""Admin authentication: sessions, role gating, and credential forms."""

from sitecms.auth.forms import ForgotPasswordForm, LoginForm, ResetPasswordForm
from sitecms.auth.provider import AuthProvider
from sitecms.auth.session import ADMIN_ROLES, EDITOR_ROLES, Session, SessionManager, lookup_role

__all__ = [
    "ADMIN_ROLES",
    "EDITOR_ROLES",
    "AuthProvider",
    "ForgotPasswordForm",
    "LoginForm",
    "ResetPasswordForm",
    "Session",
    "SessionManager",
    "lookup_role",
]
