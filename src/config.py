"""Unified configuration loaded from .sitecms.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from enum import StrEnum
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from sitecms.content.models import AppRole

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".sitecms.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "sitecms" / "config.toml"


class BackendKind(StrEnum):
    LOCAL = "local"
    SUPABASE = "supabase"


class BackendConfig(BaseModel):
    """[backend] section."""

    kind: BackendKind = BackendKind.LOCAL
    store_path: str = ".sitecms-store.json"


class SupabaseConfig(BaseModel):
    """[supabase] section."""

    url: str = ""
    key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


class EditorConfig(BaseModel):
    """[editor] section."""

    slug_check_delay_ms: int = Field(default=500, ge=0)
    autosave_delay_ms: int = Field(default=800, ge=0)
    autosave: bool = True

    @property
    def slug_check_delay(self) -> float:
        return self.slug_check_delay_ms / 1000

    @property
    def autosave_delay(self) -> float:
        return self.autosave_delay_ms / 1000


class AdminConfig(BaseModel):
    """[admin] section: who the CLI acts as."""

    page_size: int = Field(default=10, ge=1, le=500)
    user_id: str = ""
    role: AppRole | None = None
    email: str = ""
    password: str = ""


class ExportConfig(BaseModel):
    """[export] section."""

    directory: str = "./exports"


class SiteConfig(BaseModel):
    """Top-level configuration model for the admin tooling."""

    backend: BackendConfig = Field(default_factory=BackendConfig)
    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)


def find_config_file() -> Path | None:
    """First ``.sitecms.toml`` on the search path, else the global file."""
    for search_dir in CONFIG_SEARCH_PATHS:
        candidate = search_dir / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return GLOBAL_CONFIG if GLOBAL_CONFIG.exists() else None


def load_config(path: str | Path | None = None) -> SiteConfig:
    """Build the effective configuration.

    An explicit ``path`` wins; otherwise :func:`find_config_file` decides.
    Environment variables (including any ``.env`` file) are overlaid last.
    """
    data: dict[str, object] = {}
    toml_path = Path(path) if path is not None else find_config_file()
    if toml_path is not None:
        if toml_path.exists():
            data = _load_toml(toml_path)
            logger.info("Loaded config from %s", toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)

    load_dotenv()
    return _apply_env_vars(SiteConfig.model_validate(data))


# CLI flag name -> (section, field)
_CLI_FIELDS: dict[str, tuple[str, str]] = {
    "backend": ("backend", "kind"),
    "store_path": ("backend", "store_path"),
    "supabase_url": ("supabase", "url"),
    "supabase_key": ("supabase", "key"),
    "user_id": ("admin", "user_id"),
    "role": ("admin", "role"),
    "page_size": ("admin", "page_size"),
    "export_dir": ("export", "directory"),
}


def merge_cli_overrides(config: SiteConfig, **cli_kwargs: object) -> SiteConfig:
    """Return ``config`` with every flag the user actually passed applied.

    Flags left at None are ignored, as are names that map to no setting.
    """
    data = config.model_dump()
    for name, value in cli_kwargs.items():
        target = _CLI_FIELDS.get(name)
        if target is None or value is None:
            continue
        section, field = target
        data[section][field] = value
    return SiteConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: SiteConfig) -> SiteConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "SUPABASE_URL": ("supabase", "url"),
        "SUPABASE_KEY": ("supabase", "key"),
        "SITECMS_BACKEND": ("backend", "kind"),
        "SITECMS_STORE_PATH": ("backend", "store_path"),
        "SITECMS_USER_ID": ("admin", "user_id"),
        "SITECMS_ROLE": ("admin", "role"),
        "SITECMS_EMAIL": ("admin", "email"),
        "SITECMS_PASSWORD": ("admin", "password"),
        "SITECMS_EXPORT_DIR": ("export", "directory"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    page_size_raw = os.environ.get("SITECMS_PAGE_SIZE")
    if page_size_raw is not None:
        data["admin"]["page_size"] = int(page_size_raw)

    autosave_raw = os.environ.get("SITECMS_AUTOSAVE")
    if autosave_raw is not None:
        data["editor"]["autosave"] = autosave_raw.lower() in ("true", "1", "yes")

    return SiteConfig.model_validate(data)
