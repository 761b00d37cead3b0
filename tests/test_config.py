"""Tests for src/config.py: SiteConfig, TOML loading, env vars, CLI overrides."""

import logging

import pytest
from dotenv import load_dotenv
from pydantic import ValidationError
from sitecms.config import (
    BackendKind,
    SiteConfig,
    load_config,
    merge_cli_overrides,
)
from sitecms.content.models import AppRole

_ENV_VARS = (
    "SUPABASE_URL", "SUPABASE_KEY", "SITECMS_BACKEND", "SITECMS_STORE_PATH",
    "SITECMS_USER_ID", "SITECMS_ROLE", "SITECMS_EMAIL", "SITECMS_PASSWORD",
    "SITECMS_EXPORT_DIR", "SITECMS_PAGE_SIZE", "SITECMS_AUTOSAVE",
)


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """No ambient env vars, no global config, CWD in a scratch directory."""
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("sitecms.config.GLOBAL_CONFIG", tmp_path / "global" / "config.toml")
    monkeypatch.chdir(tmp_path)


class TestSiteConfigDefaults:
    def test_backend(self):
        cfg = SiteConfig()
        assert cfg.backend.kind is BackendKind.LOCAL
        assert cfg.backend.store_path == ".sitecms-store.json"
        assert cfg.supabase.is_configured is False

    def test_editor_delays(self):
        cfg = SiteConfig()
        assert cfg.editor.slug_check_delay == 0.5
        assert cfg.editor.autosave_delay == 0.8
        assert cfg.editor.autosave is True

    def test_admin(self):
        cfg = SiteConfig()
        assert cfg.admin.page_size == 10
        assert cfg.admin.role is None
        assert cfg.export.directory == "./exports"

    def test_page_size_bounds(self):
        with pytest.raises(ValidationError):
            SiteConfig.model_validate({"admin": {"page_size": 0}})


class TestLoadConfig:
    def test_load_from_explicit_path(self, tmp_path):
        toml_path = tmp_path / "custom.toml"
        toml_path.write_text(
            '[editor]\nautosave_delay_ms = 1500\n\n[admin]\nuser_id = "u1"\nrole = "editor"\n'
        )
        cfg = load_config(toml_path)
        assert cfg.editor.autosave_delay == 1.5
        assert cfg.admin.user_id == "u1"
        assert cfg.admin.role is AppRole.EDITOR

    def test_missing_path_warns_and_returns_defaults(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="sitecms.config"):
            cfg = load_config(tmp_path / "nonexistent.toml")
        assert cfg.admin.page_size == 10
        assert "Config file not found" in caplog.text

    def test_searches_cwd(self, tmp_path):
        (tmp_path / ".sitecms.toml").write_text('[backend]\nstore_path = "content.json"\n')
        assert load_config().backend.store_path == "content.json"

    def test_falls_back_to_global(self, tmp_path):
        global_path = tmp_path / "global" / "config.toml"
        global_path.parent.mkdir()
        global_path.write_text('[export]\ndirectory = "/srv/exports"\n')
        assert load_config().export.directory == "/srv/exports"

    def test_invalid_toml_returns_defaults(self, tmp_path):
        toml_path = tmp_path / "broken.toml"
        toml_path.write_text("[backend\nkind = ")
        assert load_config(toml_path).backend.kind is BackendKind.LOCAL


class TestEnvVars:
    def test_supabase_credentials(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "service-key")
        cfg = load_config()
        assert cfg.supabase.url == "https://abc.supabase.co"
        assert cfg.supabase.is_configured

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        (tmp_path / ".sitecms.toml").write_text('[backend]\nkind = "local"\n')
        monkeypatch.setenv("SITECMS_BACKEND", "supabase")
        monkeypatch.setenv("SITECMS_ROLE", "admin")
        cfg = load_config()
        assert cfg.backend.kind is BackendKind.SUPABASE
        assert cfg.admin.role is AppRole.ADMIN

    def test_page_size_and_autosave(self, monkeypatch):
        monkeypatch.setenv("SITECMS_PAGE_SIZE", "25")
        monkeypatch.setenv("SITECMS_AUTOSAVE", "no")
        cfg = load_config()
        assert cfg.admin.page_size == 25
        assert cfg.editor.autosave is False

    def test_dotenv_file_is_read(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("SITECMS_USER_ID=from-dotenv\n")
        # Registered first so teardown removes what the .env file sets
        monkeypatch.setenv("SITECMS_USER_ID", "")
        monkeypatch.setattr(
            "sitecms.config.load_dotenv", lambda: load_dotenv(tmp_path / ".env", override=True)
        )
        assert load_config().admin.user_id == "from-dotenv"


class TestMergeCliOverrides:
    def test_none_values_ignored(self):
        cfg = merge_cli_overrides(SiteConfig(), backend=None, user_id=None)
        assert cfg == SiteConfig()

    def test_overrides_applied(self):
        cfg = merge_cli_overrides(
            SiteConfig(),
            backend="supabase",
            store_path="/tmp/store.json",
            user_id="u9",
            role="author",
            page_size=50,
            export_dir="out",
        )
        assert cfg.backend.kind is BackendKind.SUPABASE
        assert cfg.backend.store_path == "/tmp/store.json"
        assert cfg.admin.user_id == "u9"
        assert cfg.admin.role is AppRole.AUTHOR
        assert cfg.admin.page_size == 50
        assert cfg.export.directory == "out"

    def test_unknown_keys_ignored(self):
        assert merge_cli_overrides(SiteConfig(), verbose=True) == SiteConfig()

    def test_bad_role_rejected(self):
        with pytest.raises(ValidationError):
            merge_cli_overrides(SiteConfig(), role="owner")
