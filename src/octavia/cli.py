"""octavia CLI: inspect and edit a file-backed octavia database.

Commands:
    octavia init [NAME]                    create octavia.toml + data dir
    octavia info                           database files, sizes, entities
    octavia insert COLL JSON               append a record (or a JSON list)
    octavia find COLL [QUERY] [--all]      first match, or every match
    octavia update COLL QUERY PATCH        deep-merge PATCH into the match
    octavia remove COLL QUERY [--all]      remove the first / every match
    octavia get DOC [KEY]                  one key, or the whole document
    octavia set DOC KEY JSON               set a key
    octavia unset DOC KEY                  drop a key
    octavia drop NAME [--document]         delete a collection or document

The password comes from OCTAVIA_PASSWORD (environment or .env).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from octavia.config import OctaviaConfig, init_config, load_config
from octavia.database import Database
from octavia.errors import OctaviaError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> OctaviaConfig:
    try:
        cfg = load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc
    logging.basicConfig(level=cfg.logging.level, format="%(asctime)s %(name)s %(message)s")
    return cfg


@contextmanager
def _open_db() -> Iterator[tuple[OctaviaConfig, Database]]:
    """Open the project database without a background committer; commit on exit."""
    cfg = _load_cfg()
    try:
        db = cfg.open_database(auto_commit=False)
        yield cfg, db
        db.close()
    except OctaviaError as exc:
        raise click.ClickException(str(exc)) from exc


def _parse_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"{what} is not valid JSON: {exc}"
        raise click.BadParameter(msg) from exc


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, ensure_ascii=False))


def _encrypt_flag(cfg: OctaviaConfig, plain: bool) -> bool:
    return False if plain else cfg.database.encrypt


_plain_option = click.option("--plain", is_flag=True, help="Use the unencrypted (.json) file")


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="octavia-db")
def cli() -> None:
    """octavia: embedded, file-backed document store."""


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(name: str | None, root: str) -> None:
    """Create octavia.toml and the data directory."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("octavia.toml already exists, skipping init")

    cfg = load_config(root_path)
    cfg.ensure_dirs()
    click.echo(f"Data dir  : {cfg.database.path}")
    if not cfg.password:
        click.echo("Set OCTAVIA_PASSWORD (environment or .env) before opening the database")


@cli.command()
def info() -> None:
    """Show database files, sizes and entities."""
    from rich.console import Console
    from rich.table import Table

    with _open_db() as (cfg, db):
        dbi = db.info()
        console = Console()

        table = Table(title=f"octavia: {cfg.name}", show_header=True, header_style="bold")
        table.add_column("Metric", style="dim", no_wrap=True)
        table.add_column("Value", justify="right")
        table.add_row("Config", str(cfg.config_path))
        table.add_row("Path", str(dbi.path))
        table.add_row("Size", f"{dbi.size} bytes  [{dbi.size_mb}]")
        table.add_row("Modified", dbi.modified.isoformat(timespec="seconds"))
        table.add_row("Files", str(len(dbi.files)))
        interval = cfg.database.auto_commit_interval
        table.add_row("Auto-commit", f"every {interval:g}s" if interval else "[dim]disabled[/dim]")
        console.print(table)

        names = db.entities()
        if not names:
            console.print("[dim]no collections or documents yet[/dim]")
            return
        ents = Table(show_header=True, header_style="bold")
        ents.add_column("File")
        ents.add_column("Encrypted")
        ents.add_column("Bytes", justify="right")
        for f in dbi.files:
            if f.stem not in names:
                continue
            enc = "[green]yes[/green]" if f.suffix == ".enc" else "[yellow]no[/yellow]"
            ents.add_row(f.name, enc, str(f.stat().st_size))
        console.print(ents)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("collection")
@click.argument("record")
@_plain_option
def insert(collection: str, record: str, plain: bool) -> None:
    """Insert RECORD (a JSON object, or a JSON list of objects)."""
    value = _parse_json(record, "RECORD")
    with _open_db() as (cfg, db):
        coll = db.collection(collection, encrypt=_encrypt_flag(cfg, plain))
        if isinstance(value, list):
            n = coll.insert_many(value)
            click.echo(f"Inserted {n} records into {collection}")
        else:
            coll.insert(value)
            click.echo(f"Inserted 1 record into {collection}")


@cli.command()
@click.argument("collection")
@click.argument("query", default="{}")
@click.option("--all", "many", is_flag=True, help="Return every match, not just the first")
@_plain_option
def find(collection: str, query: str, many: bool, plain: bool) -> None:
    """Print records of COLLECTION matching QUERY (a JSON object)."""
    q = _parse_json(query, "QUERY")
    with _open_db() as (cfg, db):
        coll = db.collection(collection, encrypt=_encrypt_flag(cfg, plain))
        if many:
            _echo_json(coll.find_many(q))
            return
        found = coll.find(q)
        if found is None:
            raise click.ClickException("No matching record found.")
        _echo_json(found)


@cli.command()
@click.argument("collection")
@click.argument("query")
@click.argument("patch")
@click.option("--all", "many", is_flag=True, help="Update every match")
@_plain_option
def update(collection: str, query: str, patch: str, many: bool, plain: bool) -> None:
    """Deep-merge PATCH into records of COLLECTION matching QUERY."""
    q = _parse_json(query, "QUERY")
    p = _parse_json(patch, "PATCH")
    with _open_db() as (cfg, db):
        coll = db.collection(collection, encrypt=_encrypt_flag(cfg, plain))
        if many:
            click.echo(f"Updated {coll.update_many(q, p)} records")
            return
        updated = coll.update(q, p)
        if updated is None:
            raise click.ClickException("No matching record found.")
        _echo_json(updated)


@cli.command()
@click.argument("collection")
@click.argument("query")
@click.option("--all", "many", is_flag=True, help="Remove every match")
@_plain_option
def remove(collection: str, query: str, many: bool, plain: bool) -> None:
    """Remove records of COLLECTION matching QUERY."""
    q = _parse_json(query, "QUERY")
    with _open_db() as (cfg, db):
        coll = db.collection(collection, encrypt=_encrypt_flag(cfg, plain))
        n = coll.remove_many(q) if many else int(coll.remove(q) is not None)
        if n == 0:
            raise click.ClickException("No matching record found to remove.")
        click.echo(f"Removed {n} record{'s' if n != 1 else ''}")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("document")
@click.argument("key", required=False)
@_plain_option
def get(document: str, key: str | None, plain: bool) -> None:
    """Print KEY of DOCUMENT, or the whole document."""
    with _open_db() as (cfg, db):
        doc = db.document(document, encrypt=_encrypt_flag(cfg, plain))
        if key is None:
            _echo_json(doc.to_dict())
            return
        if key not in doc:
            raise click.ClickException(f"No key {key!r} in {document}")
        _echo_json(doc.get(key))


@cli.command("set")
@click.argument("document")
@click.argument("key")
@click.argument("value")
@_plain_option
def set_(document: str, key: str, value: str, plain: bool) -> None:
    """Set KEY of DOCUMENT to VALUE (JSON)."""
    v = _parse_json(value, "VALUE")
    with _open_db() as (cfg, db):
        db.document(document, encrypt=_encrypt_flag(cfg, plain)).set(key, v)
        click.echo(f"Set {document}.{key}")


@cli.command()
@click.argument("document")
@click.argument("key")
@_plain_option
def unset(document: str, key: str, plain: bool) -> None:
    """Remove KEY from DOCUMENT."""
    with _open_db() as (cfg, db):
        if not db.document(document, encrypt=_encrypt_flag(cfg, plain)).remove(key):
            raise click.ClickException(f"No key {key!r} in {document}")
        click.echo(f"Removed {document}.{key}")


@cli.command()
@click.argument("name")
@click.option("--document", "is_document", is_flag=True, help="NAME is a document, not a collection")
@_plain_option
@click.confirmation_option(prompt="Delete this file permanently?")
def drop(name: str, is_document: bool, plain: bool) -> None:
    """Delete the collection (or document) NAME."""
    with _open_db() as (cfg, db):
        encrypt = _encrypt_flag(cfg, plain)
        entity = db.document(name, encrypt=encrypt) if is_document else db.collection(name, encrypt=encrypt)
        entity.delete()
        click.echo(f"Deleted {entity.file_path.name}")


if __name__ == "__main__":
    cli()
