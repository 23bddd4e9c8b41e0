from __future__ import annotations

import json
import sys
from itertools import islice
from typing import Optional

import typer

from dustydb.config import get_settings
from dustydb.database import Database
from dustydb.domain.record import record_type_for
from dustydb.domain.schema import schema_for
from dustydb.errors import DustyDBError, SchemaError
from dustydb.infrastructure.store_factory import available_backends, build_store
from dustydb.reporter import decode_items, print_records
from dustydb.utils.logging import configure_logging

app = typer.Typer(help="DustyDB record store CLI.")


def _namespace(table: str) -> str:
    """Store namespace for a record type name, or ``table`` itself when undeclared."""
    try:
        return schema_for(record_type_for(table)).table
    except SchemaError:
        return table


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    if settings.store_backend == "postgres":
        location = (
            f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
            f" table={settings.db_table}"
        )
    elif settings.store_backend == "file":
        location = f"path={settings.store_path}"
    else:
        location = "in-process"
    typer.echo(
        f"store={settings.store_backend} ({location}) | "
        f"unknown_attributes={settings.unknown_attributes} | "
        f"backends={', '.join(available_backends())}"
    )


@app.command()
def dump(
    table: str = typer.Argument(..., help="Record type (e.g. Book) or raw store namespace."),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Show at most this many records.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON instead of a table."),
) -> None:
    """
    Print the records stored in a table, ordered by key.
    """
    store = build_store()
    try:
        rows = decode_items(islice(store.scan(_namespace(table)), limit))
    except DustyDBError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        store.close()

    if as_json:
        typer.echo(json.dumps(rows, indent=2, default=str))
    else:
        print_records(table, rows)


@app.command()
def count(
    table: str = typer.Argument(..., help="Record type (e.g. Book) or raw store namespace."),
) -> None:
    """
    Print the number of records stored in a table.
    """
    store = build_store()
    try:
        try:
            total = Database(store).model(table).count()
        except SchemaError:
            total = sum(1 for _ in store.scan(table))
    except DustyDBError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    typer.echo(str(total))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
