"""Smoke tests for the CLI."""

import os
from pathlib import Path

import pytest
from rich.console import Console
from sitecms import __version__
from sitecms.cli import app
from sitecms.content.store import ContentStore
from sitecms.editor.drawer import EditorDrawer
from typer.testing import CliRunner

_ENV_PREFIXES = ("SITECMS_", "SUPABASE_")


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """No ambient config, and a console wide enough for full tables."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key)
    monkeypatch.setattr("sitecms.config.GLOBAL_CONFIG", tmp_path / "global.toml")
    monkeypatch.setattr("sitecms.cli.console", Console(width=200))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """A local store with one service, one FAQ, and a role assignment."""
    path = tmp_path / "store.json"
    store = ContentStore(path)
    store.seed("services", [{"id": "s1", "title": "SEO Audits", "slug": "seo-audits", "status": "draft"}])
    store.seed("faq", [{"id": "f1", "question": "How long?", "answer_rich": "<p>Weeks</p>"}])
    store.seed("user_roles", [{"user_id": "u-admin", "role": "admin"}])
    return path


def _invoke(runner: CliRunner, store_path: Path, *args: str, role: str | None = "editor"):
    base = ["--store", str(store_path), "--user", "u1"]
    if role is not None:
        base += ["--role", role]
    return runner.invoke(app, [*base, *args])


def _record_drawers(monkeypatch) -> list[EditorDrawer]:
    """Keep every drawer the CLI builds so its settings can be inspected."""
    drawers: list[EditorDrawer] = []
    build = EditorDrawer.from_config

    def recording(*args, **kwargs):
        drawer = build(*args, **kwargs)
        drawers.append(drawer)
        return drawer

    monkeypatch.setattr(EditorDrawer, "from_config", recording)
    return drawers


class TestBasics:
    def test_help(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("list", "edit", "export", "bulk-status", "delete", "whoami"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"sitecms {__version__}" in result.output

    def test_slugify(self, runner):
        result = runner.invoke(app, ["slugify", "Digital Marketing & SEO!"])
        assert result.exit_code == 0
        assert result.output.strip() == "digital-marketing-seo"

    def test_unknown_collection(self, runner, store_path):
        result = _invoke(runner, store_path, "list", "widgets")
        assert result.exit_code == 1
        assert "Unknown collection 'widgets'" in result.output


class TestList:
    def test_lists_rows(self, runner, store_path):
        result = _invoke(runner, store_path, "list", "services")
        assert result.exit_code == 0
        assert "Service: page 1/1 (1 total)" in result.output
        assert "seo-audits" in result.output

    def test_search_without_matches(self, runner, store_path):
        result = _invoke(runner, store_path, "list", "services", "--search", "ppc")
        assert result.exit_code == 0
        assert "No service records found." in result.output

    def test_bad_filter(self, runner, store_path):
        result = _invoke(runner, store_path, "list", "services", "--filter", "title=x")
        assert result.exit_code == 1
        assert "Cannot filter services by: title" in result.output

    def test_malformed_filter(self, runner, store_path):
        result = _invoke(runner, store_path, "list", "services", "--filter", "status")
        assert result.exit_code == 1
        assert "--filter expects field=value" in result.output


class TestEdit:
    def test_create(self, runner, store_path):
        result = _invoke(
            runner, store_path, "edit", "services",
            "--set", "title=PPC Management", "--set", "status=published",
        )
        assert result.exit_code == 0, result.output
        assert "Service created" in result.output
        rows = ContentStore(store_path).repository("services").find_by_slug("ppc-management")
        assert rows and rows[0]["status"] == "published"
        assert rows[0]["published_at"] is not None

    def test_update(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "services", "s1", "--set", "category=Marketing")
        assert result.exit_code == 0, result.output
        assert "Service updated (s1)" in result.output
        row = ContentStore(store_path).repository("services").get("s1")
        assert row["category"] == "Marketing"
        assert row["updated_by"] == "u1"

    def test_list_field(self, runner, store_path):
        result = _invoke(
            runner, store_path, "edit", "services", "s1",
            "--set", "gallery_urls=https://example.com/a.png, https://example.com/b.png",
        )
        assert result.exit_code == 0, result.output
        row = ContentStore(store_path).repository("services").get("s1")
        assert row["gallery_urls"] == ["https://example.com/a.png", "https://example.com/b.png"]

    def test_validation_errors(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "services", "--set", "title=ab")
        assert result.exit_code == 1
        assert "Title must be at least 3 characters" in result.output
        assert len(ContentStore(store_path).repository("services").list()) == 1

    def test_duplicate_slug(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "services", "--set", "title=SEO Audits")
        assert result.exit_code == 1
        assert "A service with this slug already exists" in result.output

    def test_missing_record(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "services", "nope", "--set", "title=New")
        assert result.exit_code == 1
        assert "Service not found" in result.output

    def test_unknown_field(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "services", "s1", "--set", "colour=red")
        assert result.exit_code == 1
        assert "Service has no field 'colour'" in result.output

    def test_editor_settings_come_from_config(self, runner, store_path, tmp_path, monkeypatch):
        (tmp_path / ".sitecms.toml").write_text("[editor]\nslug_check_delay_ms = 0\nautosave_delay_ms = 1234\n")
        drawers = _record_drawers(monkeypatch)
        result = _invoke(runner, store_path, "edit", "services", "s1", "--set", "category=Marketing")
        assert result.exit_code == 0, result.output
        assert drawers[0].autosave is not None
        assert drawers[0].autosave.delay == 1.234
        assert ContentStore(store_path).repository("services").get("s1")["category"] == "Marketing"

    def test_autosave_switched_off_by_env(self, runner, store_path, monkeypatch):
        monkeypatch.setenv("SITECMS_AUTOSAVE", "false")
        drawers = _record_drawers(monkeypatch)
        result = _invoke(runner, store_path, "edit", "services", "s1", "--set", "category=Marketing")
        assert result.exit_code == 0, result.output
        assert drawers[0].autosave is None

    def test_viewer_denied(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "services", "--set", "title=PPC", role="viewer")
        assert result.exit_code == 1
        assert "may not do this" in result.output

    def test_user_roles_not_editable(self, runner, store_path):
        result = _invoke(runner, store_path, "edit", "user_roles")
        assert result.exit_code == 1
        assert "not editable" in result.output


class TestBulkAndDelete:
    def test_bulk_publish(self, runner, store_path):
        result = _invoke(runner, store_path, "bulk-status", "services", "publish", "s1", "missing")
        assert result.exit_code == 1
        assert "Updated 1 record(s)" in result.output
        assert "missing" in result.output
        assert ContentStore(store_path).repository("services").get("s1")["status"] == "published"

    def test_bulk_action_unavailable(self, runner, store_path):
        result = _invoke(runner, store_path, "bulk-status", "faq", "archive", "f1")
        assert result.exit_code == 1
        assert "'archive' is not available for faq" in result.output

    def test_services_can_be_paused(self, runner, store_path):
        result = _invoke(runner, store_path, "bulk-status", "services", "pause", "s1")
        assert result.exit_code == 0, result.output
        assert ContentStore(store_path).repository("services").get("s1")["status"] == "paused"

    def test_editor_cannot_delete(self, runner, store_path):
        result = _invoke(runner, store_path, "delete", "services", "s1", "--yes")
        assert result.exit_code == 1
        assert "may not do this" in result.output

    def test_soft_delete(self, runner, store_path):
        result = _invoke(runner, store_path, "delete", "services", "s1", "--yes", role="admin")
        assert result.exit_code == 0, result.output
        assert "Deleted 1 record(s)" in result.output
        repo = ContentStore(store_path).repository("services")
        assert repo.list() == []
        assert repo.list(include_deleted=True)[0]["deleted_at"] is not None

    def test_hard_delete_confirmation_declined(self, runner, store_path):
        result = runner.invoke(
            app,
            ["--store", str(store_path), "--user", "u1", "--role", "admin", "delete", "faq", "f1"],
            input="n\n",
        )
        assert result.exit_code == 1
        assert "Permanently delete 1 faq record(s)?" in result.output
        assert "Aborted." in result.output
        assert ContentStore(store_path).repository("faq").get("f1")


class TestExportAndStats:
    def test_export(self, runner, store_path, tmp_path):
        output = tmp_path / "out" / "services.csv"
        result = _invoke(runner, store_path, "export", "services", "-o", str(output))
        assert result.exit_code == 0
        assert "Exported 1 service record(s)" in result.output
        lines = output.read_text().splitlines()
        assert lines[0] == "id,title,slug,category,status,published_at,updated_at"
        assert lines[1].startswith("s1,SEO Audits,seo-audits")

    def test_export_default_directory(self, runner, store_path, tmp_path):
        result = _invoke(runner, store_path, "export", "faq")
        assert result.exit_code == 0
        assert (tmp_path / "exports" / "faq.csv").exists()

    def test_stats(self, runner, store_path):
        result = _invoke(runner, store_path, "stats")
        assert result.exit_code == 0
        assert "Service" in result.output
        assert "Blog post" in result.output


class TestWhoami:
    def test_configured_role(self, runner, store_path):
        result = _invoke(runner, store_path, "whoami", role="author")
        assert result.exit_code == 0
        assert "User:  u1" in result.output
        assert "Role:  author" in result.output

    def test_role_looked_up(self, runner, store_path):
        result = runner.invoke(app, ["--store", str(store_path), "--user", "u-admin", "whoami"])
        assert result.exit_code == 0
        assert "Role:  admin" in result.output

    def test_not_signed_in(self, runner, store_path):
        result = runner.invoke(app, ["--store", str(store_path), "whoami"])
        assert result.exit_code == 1
        assert "Not signed in." in result.output
