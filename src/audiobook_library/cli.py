"""CLI entry point for the audiobook library (audiobook-library command)."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any

import click
from loguru import logger

from .config import LibraryConfig
from .errors import ConfigError, InvalidOverrideError, LibraryError
from .import_orchestrator import Importer
from .library_db import LibraryDB
from .metadata_resolver import MetadataService
from .models import EDITABLE_FIELDS, BrowseEntry, FieldOverride
from .paths import browse_root, resolve_within_root
from .scan_orchestrator import LibraryScanner
from .scanner import list_entries

log = logger.bind(stage="cli")


def _echo_json(value: Any) -> None:
    if is_dataclass(value):
        value = asdict(value)
    elif isinstance(value, list):
        value = [asdict(v) if is_dataclass(v) else v for v in value]
    click.echo(json.dumps(value, indent=2, default=str))


class _Context:
    def __init__(self, config: LibraryConfig) -> None:
        self.config = config
        self._db: LibraryDB | None = None

    @property
    def db(self) -> LibraryDB:
        if self._db is None:
            self.config.ensure_dirs()
            self._db = LibraryDB(
                self.config.database_path,
                default_destination=self.config.default_destination,
                default_template=self.config.default_template,
            )
        return self._db


pass_ctx = click.make_pass_decorator(_Context)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database path (overrides LIBRARY_DATABASE_PATH).",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, db_path: Path | None) -> None:
    """Scan, import, and curate an audiobook library."""
    # Pass CLI flags as kwargs to avoid env pollution
    config_kwargs: dict[str, Any] = {}
    if verbose:
        config_kwargs["log_level"] = "DEBUG"
    if db_path is not None:
        config_kwargs["database_path"] = db_path

    config = LibraryConfig(**config_kwargs)
    config.setup_logging()
    ctx.obj = _Context(config)

    @ctx.call_on_close
    def _close() -> None:
        if ctx.obj._db is not None:
            ctx.obj._db.close()


def _run(fn, *args, **kwargs):
    """Call fn, turning request-level library errors into click errors."""
    try:
        return fn(*args, **kwargs)
    except LibraryError as e:
        raise click.ClickException(str(e)) from e


# -- Scan / import / browse --


@main.command()
@click.argument("library_id", required=False)
@click.option("--all", "scan_all", is_flag=True, help="Scan every library.")
@pass_ctx
def scan(obj: _Context, library_id: str | None, scan_all: bool) -> None:
    """Discover new audiobooks in a library's directories."""
    if not library_id and not scan_all:
        raise click.UsageError("Give a LIBRARY_ID or --all.")
    scanner = LibraryScanner(obj.db, obj.config)
    if scan_all:
        _echo_json(scanner.scan_all_libraries())
    else:
        _echo_json(_run(scanner.scan_library, library_id))


@main.command("import")
@click.argument("folder_id")
@click.argument("selections", nargs=-1, required=True)
@click.option("--template", default=None, help="Override the destination template.")
@pass_ctx
def import_cmd(
    obj: _Context, folder_id: str, selections: tuple[str, ...], template: str | None
) -> None:
    """Copy staged SELECTIONS from an import folder into the library."""
    importer = Importer(obj.db, obj.config)
    _echo_json(_run(importer.import_selection, folder_id, list(selections), template))


@main.command()
@click.argument("path", required=False, default="")
@click.option("--import-root", is_flag=True, help="Browse the import root instead.")
@click.option("--folder", "folder_id", default=None, help="Browse inside an import folder.")
@click.option(
    "--entries", is_flag=True, help="List files and folders with sizes and file counts."
)
@pass_ctx
def browse(
    obj: _Context, path: str, import_root: bool, folder_id: str | None, entries: bool
) -> None:
    """List directories under the library (or import) browse root."""
    if folder_id:
        importer = Importer(obj.db, obj.config)
        _echo_json(_run(importer.browse_folder, folder_id, path))
        return
    root = obj.config.import_root if import_root else obj.config.library_root
    if entries:
        _echo_json(_run(_list_entries, root, path))
        return
    _echo_json(_run(browse_root, root, path))


def _list_entries(root: Path | None, path: str) -> list[BrowseEntry]:
    if not root:
        raise ConfigError("browse root not configured")
    target, _ = resolve_within_root(root, path)
    return list_entries(target)


# -- Library / path / folder / settings management --


@main.group()
def library() -> None:
    """Manage libraries."""


@library.command("add")
@click.argument("display_name")
@click.option("--description", default=None)
@pass_ctx
def library_add(obj: _Context, display_name: str, description: str | None) -> None:
    _echo_json(obj.db.create_library(display_name, description=description))


@library.command("list")
@pass_ctx
def library_list(obj: _Context) -> None:
    _echo_json(obj.db.list_libraries())


@main.group()
def path() -> None:
    """Manage library directories."""


@path.command("add")
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--name", default=None)
@pass_ctx
def path_add(obj: _Context, directory: Path, name: str | None) -> None:
    _echo_json(obj.db.create_library_path(directory.resolve(), name=name))


@path.command("link")
@click.argument("library_id")
@click.argument("path_ids", nargs=-1)
@pass_ctx
def path_link(obj: _Context, library_id: str, path_ids: tuple[str, ...]) -> None:
    """Set the directories backing LIBRARY_ID."""
    _echo_json(_run(obj.db.set_library_directories, library_id, list(path_ids)))


@main.group()
def folder() -> None:
    """Manage import folders."""


@folder.command("add")
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--name", default=None)
@click.option("--disabled", is_flag=True)
@pass_ctx
def folder_add(obj: _Context, directory: Path, name: str | None, disabled: bool) -> None:
    _echo_json(
        obj.db.create_import_folder(directory.resolve(), name=name, enabled=not disabled)
    )


@main.group()
def settings() -> None:
    """Import settings."""


@settings.command("set")
@click.option("--destination", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("--template", default=None)
@pass_ctx
def settings_set(obj: _Context, destination: Path | None, template: str | None) -> None:
    dest = destination.resolve() if destination else None
    _echo_json(obj.db.update_import_settings(dest, template))


# -- Metadata --


@main.group()
def metadata() -> None:
    """Show and edit an audiobook's metadata overrides."""


@metadata.command("show")
@click.argument("audiobook_id")
@pass_ctx
def metadata_show(obj: _Context, audiobook_id: str) -> None:
    """Print the effective metadata of an audiobook."""
    _echo_json(_run(MetadataService(obj.db).effective_metadata, audiobook_id))


def _current_overrides(obj: _Context, audiobook_id: str) -> dict[str, FieldOverride]:
    return _run(obj.db.get_metadata_overrides, audiobook_id)


def _save(obj: _Context, audiobook_id: str, overrides: dict[str, FieldOverride]) -> None:
    try:
        saved = MetadataService(obj.db).save_overrides(audiobook_id, overrides)
    except InvalidOverrideError as e:
        raise click.BadParameter(str(e)) from e
    except LibraryError as e:
        raise click.ClickException(str(e)) from e
    _echo_json({name: o.to_payload() for name, o in saved.items()})


@metadata.command("lock")
@click.argument("audiobook_id")
@click.argument("fields", nargs=-1, required=True, type=click.Choice(EDITABLE_FIELDS))
@pass_ctx
def metadata_lock(obj: _Context, audiobook_id: str, fields: tuple[str, ...]) -> None:
    """Freeze FIELDS at their current source value."""
    overrides = _current_overrides(obj, audiobook_id)
    for name in fields:
        if name not in overrides:
            overrides[name] = FieldOverride(locked=True)
    _save(obj, audiobook_id, overrides)


@metadata.command("unlock")
@click.argument("audiobook_id")
@click.argument("fields", nargs=-1, required=True, type=click.Choice(EDITABLE_FIELDS))
@pass_ctx
def metadata_unlock(obj: _Context, audiobook_id: str, fields: tuple[str, ...]) -> None:
    """Drop overrides on FIELDS so they track their live source again."""
    overrides = _current_overrides(obj, audiobook_id)
    for name in fields:
        overrides.pop(name, None)
    _save(obj, audiobook_id, overrides)


@metadata.command("set")
@click.argument("audiobook_id")
@click.argument("field", type=click.Choice(EDITABLE_FIELDS))
@click.argument("value")
@pass_ctx
def metadata_set(obj: _Context, audiobook_id: str, field: str, value: str) -> None:
    """Set a custom (always locked) value for FIELD."""
    overrides = _current_overrides(obj, audiobook_id)
    overrides[field] = FieldOverride(locked=True, value=value)
    _save(obj, audiobook_id, overrides)


@metadata.command("clear")
@click.argument("audiobook_id")
@pass_ctx
def metadata_clear(obj: _Context, audiobook_id: str) -> None:
    """Remove every override of an audiobook."""
    _run(MetadataService(obj.db).clear_overrides, audiobook_id)
    click.echo(f"Cleared overrides for {audiobook_id}")
