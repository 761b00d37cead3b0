"""Backend and session factories driven by :class:`~sitecms.config.SiteConfig`."""

from __future__ import annotations

import logging
from pathlib import Path

from sitecms.auth.session import Session, SessionManager, lookup_role
from sitecms.config import BackendKind, SiteConfig
from sitecms.content.entities import EntityType
from sitecms.content.repository import Backend
from sitecms.content.store import ContentStore

logger = logging.getLogger(__name__)


def open_backend(config: SiteConfig) -> Backend:
    """Return the configured backend: the local JSON store or Supabase."""
    if config.backend.kind is BackendKind.SUPABASE:
        from sitecms.integrations.supabase import SupabaseBackend

        logger.debug("Using Supabase backend at %s", config.supabase.url)
        return SupabaseBackend.from_config(config.supabase)
    path = Path(config.backend.store_path)
    logger.debug("Using local content store at %s", path)
    return ContentStore(path)


def open_session(config: SiteConfig, backend: Backend) -> SessionManager:
    """Establish who the tooling acts as.

    With Supabase and configured credentials this signs in for real.
    Otherwise the session is taken from ``[admin]`` settings, with the role
    looked up in ``user_roles`` when not configured explicitly.  The
    returned manager is unauthenticated when no identity is configured.
    """
    admin = config.admin
    if config.backend.kind is BackendKind.SUPABASE and admin.email and admin.password:
        from sitecms.integrations.supabase import SupabaseAuthProvider, SupabaseBackend

        client = backend.client if isinstance(backend, SupabaseBackend) else None
        if client is not None:
            manager = SessionManager(SupabaseAuthProvider(client))
            manager.sign_in(admin.email, admin.password)
            return manager

    manager = SessionManager()
    if admin.user_id:
        role = admin.role or lookup_role(backend.repository(EntityType.USER_ROLES), admin.user_id)
        manager.start(Session(user_id=admin.user_id, email=admin.email, role=role))
    return manager
