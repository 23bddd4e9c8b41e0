from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from dustydb.stores.abstract import StoredItem


def decode_items(items: Iterable[StoredItem]) -> List[Dict[str, Any]]:
    """
    Turn raw ``(key, bytes)`` pairs into row dictionaries.

    Values that are not JSON objects are kept under ``"value"`` as text, or as a
    byte count when they are not UTF-8.
    """
    rows: List[Dict[str, Any]] = []
    for key, value in items:
        row: Dict[str, Any] = {"key": key}
        try:
            decoded = json.loads(value)
        except UnicodeDecodeError:
            row["value"] = f"<{len(value)} bytes>"
        except json.JSONDecodeError:
            row["value"] = value.decode("utf-8")
        else:
            if isinstance(decoded, dict):
                row.update(decoded)
            else:
                row["value"] = decoded
        rows.append(row)
    return rows


def _columns(rows: List[Dict[str, Any]]) -> List[str]:
    columns: List[str] = []
    for row in rows:
        for name in row:
            if name not in columns:
                columns.append(name)
    return columns


def _cell(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def print_records(table_name: str, rows: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """
    Render stored records as a rich table.

    Attributes missing from a row (unset on that record) are shown dimmed.
    """
    console = console or Console()

    if not rows:
        console.print(f"[yellow]No records in '{table_name}'.[/yellow]")
        return

    table = Table(
        title=f"{table_name}",
        box=box.ROUNDED,
        caption=f"{len(rows):,} record(s), ordered by key",
    )

    columns = _columns(rows)
    for name in columns:
        if name == "key":
            table.add_column("Key", style="cyan", no_wrap=True)
        else:
            table.add_column(name, style="green")

    for row in rows:
        table.add_row(*(_cell(row[name]) if name in row else "[dim]-[/dim]" for name in columns))

    console.print(table)


__all__ = ["decode_items", "print_records"]
