"""CLI interface for sitecms."""

import asyncio
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sitecms.auth.session import ADMIN_ROLES, EDITOR_ROLES, SessionManager
from sitecms.backend import open_backend, open_session
from sitecms.config import SiteConfig, load_config, merge_cli_overrides
from sitecms.content.entities import EntitySpec, EntityType, get_entity
from sitecms.content.listing import (
    BulkAction,
    BulkResult,
    ListQuery,
    bulk_apply,
    bulk_delete,
    collection_counts,
    list_records,
    write_csv,
)
from sitecms.content.repository import Backend
from sitecms.content.slugs import slugify
from sitecms.editor.drawer import EditorDrawer
from sitecms.editor.notify import Notifier
from sitecms.errors import SiteCMSError

app = typer.Typer(
    name="sitecms",
    help="Manage services, projects, blog posts, pricing plans, and FAQs.",
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)


class _State:
    """Per-invocation config plus lazily opened backend and session."""

    def __init__(self, config: SiteConfig) -> None:
        self.config = config
        self._backend: Backend | None = None
        self._sessions: SessionManager | None = None

    @property
    def backend(self) -> Backend:
        if self._backend is None:
            self._backend = open_backend(self.config)
        return self._backend

    @property
    def sessions(self) -> SessionManager:
        if self._sessions is None:
            self._sessions = open_session(self.config, self.backend)
        return self._sessions


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from sitecms import __version__

        console.print(f"sitecms {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@contextmanager
def _errors() -> Iterator[None]:
    """Turn library errors into a red message and exit code 1."""
    try:
        yield
    except SiteCMSError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from None
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from None


def _state(ctx: typer.Context) -> _State:
    return ctx.obj


def _entity(name: str) -> EntitySpec:
    try:
        return get_entity(name)
    except ValueError:
        choices = ", ".join(e.value for e in EntityType)
        console.print(f"[red]Error:[/red] Unknown collection {name!r} (choose from {choices})")
        raise typer.Exit(1) from None


def _pairs(items: list[str], option: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in items:
        field, sep, value = item.partition("=")
        if not sep or not field:
            console.print(f"[red]Error:[/red] {option} expects field=value, got {item!r}")
            raise typer.Exit(1)
        pairs[field.strip()] = value
    return pairs


def _parse_value(default: Any, raw: str) -> Any:
    """List fields take JSON or comma-separated text; pydantic coerces the rest."""
    if isinstance(default, list):
        if raw.lstrip().startswith("["):
            return json.loads(raw)
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


def _print_bulk(result: BulkResult, verb: str) -> None:
    console.print(f"[green]{verb} {len(result.changed)} record(s)[/green]")
    for record_id, message in result.failed.items():
        console.print(f"[red]  {record_id}:[/red] {message}")


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .sitecms.toml file."),
    ] = None,
    backend: Annotated[
        Optional[str],
        typer.Option("--backend", help="Backend to use: local or supabase."),
    ] = None,
    store_path: Annotated[
        Optional[Path],
        typer.Option("--store", help="Local JSON store path (local backend)."),
    ] = None,
    user_id: Annotated[
        Optional[str],
        typer.Option("--user", help="User id to act as."),
    ] = None,
    role: Annotated[
        Optional[str],
        typer.Option("--role", help="Role to act with (skips the user_roles lookup)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """sitecms - content administration for the marketing site."""
    _setup_logging(verbose)
    with _errors():
        config = merge_cli_overrides(
            load_config(config_path),
            backend=backend,
            store_path=str(store_path) if store_path is not None else None,
            user_id=user_id,
            role=role,
        )
    ctx.obj = _State(config)


@app.command(name="slugify")
def slugify_cmd(
    text: Annotated[str, typer.Argument(help="Title to turn into a URL slug.")],
) -> None:
    """Print the slug a title would get."""
    console.print(slugify(text), markup=False, highlight=False)


@app.command(name="list")
def list_cmd(
    ctx: typer.Context,
    collection: Annotated[str, typer.Argument(help="Collection name, e.g. services.")],
    search: Annotated[str, typer.Option("--search", "-s", help="Case-insensitive text search.")] = "",
    filters: Annotated[
        Optional[list[str]],
        typer.Option("--filter", "-f", help="Equality filter, field=value (repeatable)."),
    ] = None,
    page: Annotated[int, typer.Option("--page", help="Page number.")] = 1,
    page_size: Annotated[
        Optional[int], typer.Option("--page-size", help="Rows per page.")
    ] = None,
    include_deleted: Annotated[
        bool, typer.Option("--deleted", help="Include soft-deleted records.")
    ] = False,
) -> None:
    """List records with search, filters, and paging."""
    state = _state(ctx)
    spec = _entity(collection)
    with _errors():
        query = ListQuery(
            search=search,
            filters=_pairs(filters or [], "--filter"),
            page=page,
            page_size=page_size or state.config.admin.page_size,
            include_deleted=include_deleted,
        )
        result = list_records(state.backend.repository(spec), query)

    if not result.items:
        console.print(f"[yellow]No {spec.label.lower()} records found.[/yellow]")
        return

    table = Table(title=f"{spec.label}: page {result.page}/{result.pages} ({result.total} total)")
    for column in spec.csv_columns:
        table.add_column(column)
    for row in result.items:
        table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in spec.csv_columns))
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    collection: Annotated[str, typer.Argument(help="Collection name, e.g. projects.")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="CSV file to write. Defaults to <export dir>/<collection>.csv"),
    ] = None,
    include_deleted: Annotated[
        bool, typer.Option("--deleted", help="Include soft-deleted records.")
    ] = False,
) -> None:
    """Export a collection to CSV."""
    state = _state(ctx)
    spec = _entity(collection)
    path = output or Path(state.config.export.directory) / f"{spec.collection}.csv"
    with _errors():
        rows = state.backend.repository(spec).list(include_deleted=include_deleted)
        write_csv(rows, spec.csv_columns, path)
    console.print(f"[green]Exported {len(rows)} {spec.label.lower()} record(s) to {path}[/green]")


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show record counts per collection."""
    state = _state(ctx)
    with _errors():
        counts = collection_counts(state.backend)

    table = Table(title="Content")
    table.add_column("Collection")
    table.add_column("Records", justify="right")
    for collection, count in counts.items():
        table.add_row(get_entity(collection).label, str(count))
    console.print(table)


@app.command()
def edit(
    ctx: typer.Context,
    collection: Annotated[str, typer.Argument(help="Collection name, e.g. blog_posts.")],
    record_id: Annotated[
        Optional[str], typer.Argument(help="Record id; omit to create a new record.")
    ] = None,
    values: Annotated[
        Optional[list[str]],
        typer.Option("--set", help="field=value (repeatable). Lists accept a,b,c or JSON."),
    ] = None,
    reset_slug: Annotated[
        bool, typer.Option("--reset-slug", help="Re-derive the slug from the title.")
    ] = False,
) -> None:
    """Create or update a record through the same editor the admin panel uses."""
    state = _state(ctx)
    spec = _entity(collection)
    if spec.form is None:
        console.print(f"[red]Error:[/red] {spec.label} records are not editable here")
        raise typer.Exit(1)
    changes = _pairs(values or [], "--set")

    with _errors():
        session = state.sessions.require_role(*EDITOR_ROLES)
        drawer = EditorDrawer.from_config(
            state.backend.repository(spec), session, state.config.editor, notifier=Notifier()
        )
        row = asyncio.run(_run_edit(drawer, record_id, changes, reset_slug))

    note = drawer.notifier.last
    if row is None:
        if note is not None:
            console.print(f"[red]Error:[/red] {note.message}")
        for field, message in drawer.form.errors.items():
            console.print(f"[red]  {field}:[/red] {message}")
        raise typer.Exit(1)
    console.print(f"[green]{note.message if note else 'Saved'}[/green] ({row['id']})")


async def _run_edit(
    drawer: EditorDrawer, record_id: str | None, changes: dict[str, str], reset_slug: bool
) -> dict[str, Any] | None:
    if not await drawer.open(record_id):
        return None
    try:
        for field, raw in changes.items():
            if field not in drawer.form.values:
                raise ValueError(f"{drawer.spec.label} has no field {field!r}")
            drawer.change(field, _parse_value(drawer.form.get(field), raw))
        if reset_slug:
            drawer.reset_slug()
        return await drawer.submit()
    finally:
        drawer.slug_checker.cancel()
        if drawer.autosave is not None:
            drawer.autosave.cancel()
        await drawer.wait()


@app.command(name="bulk-status")
def bulk_status(
    ctx: typer.Context,
    collection: Annotated[str, typer.Argument(help="Collection name.")],
    action: Annotated[BulkAction, typer.Argument(help="Action to apply.")],
    ids: Annotated[list[str], typer.Argument(help="Record ids.")],
) -> None:
    """Publish, unpublish, pause, resume, archive, activate, or deactivate records."""
    state = _state(ctx)
    spec = _entity(collection)
    with _errors():
        session = state.sessions.require_role(*EDITOR_ROLES)
        result = bulk_apply(state.backend.repository(spec), ids, action, user_id=session.user_id)
    _print_bulk(result, "Updated")
    if result.failed:
        raise typer.Exit(1)


@app.command()
def delete(
    ctx: typer.Context,
    collection: Annotated[str, typer.Argument(help="Collection name.")],
    ids: Annotated[list[str], typer.Argument(help="Record ids.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
) -> None:
    """Delete records (soft delete where the collection supports it)."""
    state = _state(ctx)
    spec = _entity(collection)
    with _errors():
        state.sessions.require_role(*ADMIN_ROLES)
    how = "Soft-delete" if spec.soft_delete else "Permanently delete"
    if not yes and not typer.confirm(f"{how} {len(ids)} {spec.label.lower()} record(s)?"):
        console.print("Aborted.")
        raise typer.Exit(1)
    with _errors():
        result = bulk_delete(state.backend.repository(spec), ids)
    _print_bulk(result, "Deleted")
    if result.failed:
        raise typer.Exit(1)


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the user and role the CLI acts as."""
    state = _state(ctx)
    with _errors():
        sessions = state.sessions
    if not sessions.is_authenticated:
        console.print("[yellow]Not signed in.[/yellow] Set [admin] user_id or SITECMS_USER_ID.")
        raise typer.Exit(1)
    session = sessions.current
    console.print(f"User:  {session.user_id}")
    if session.email:
        console.print(f"Email: {session.email}")
    console.print(f"Role:  {session.role.value if session.role else 'none'}")


if __name__ == "__main__":
    app()
