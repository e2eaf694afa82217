"""Result renderers and the fixed mode → renderer binding.

* Interactive mode gets a human-readable Rich table with ``null``
  visualisation.
* Batch and file modes get machine-readable CSV, byte-for-byte
  deterministic for identical results.
"""

from __future__ import annotations

import csv
from typing import Any, TextIO

from cyphersh.core.models import RenderFlags, ResultSet
from cyphersh.core.modes import Mode
from cyphersh.core.protocols import Renderer
from cyphersh.core.values import format_value
from cyphersh.exceptions import EnvironmentError


def _import_rich() -> tuple[type[Any], type[Any], type[Any]]:
    """Import Rich's Console, Table and Text lazily for table rendering."""
    try:
        from rich.console import Console
        from rich.table import Table
        from rich.text import Text
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console, Table, Text


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------

def render_results_table(result: ResultSet, out: TextIO, flags: RenderFlags) -> None:
    """Print *result* as a Rich table followed by a row count."""
    if not result.fields:
        return
    console_class, table_class, text_class = _import_rich()
    show_nulls = RenderFlags.SHOW_NULLS in flags

    table = table_class(show_header=True, header_style="bold", show_lines=False)
    for field in result.fields:
        table.add_column(field, overflow="fold")
    for record in result.records:
        table.add_row(
            *(
                text_class(format_value(value, quote_strings=True, show_nulls=show_nulls))
                for value in record
            )
        )

    console = console_class(file=out, highlight=False)
    console.print(table)
    rows = len(result)
    console.print(f"{rows} row{'s' if rows != 1 else ''}", style="dim")


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def render_results_csv(result: ResultSet, out: TextIO, flags: RenderFlags) -> None:
    """Write *result* as CSV: a header of field names, then one row per record."""
    if not result.fields:
        return
    show_nulls = RenderFlags.SHOW_NULLS in flags
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(result.fields)
    for record in result.records:
        writer.writerow(
            format_value(value, quote_strings=False, show_nulls=show_nulls) for value in record
        )
    out.flush()


def renderer_for(mode: Mode) -> Renderer:
    """Fixed binding of execution mode to renderer."""
    if mode is Mode.INTERACTIVE:
        return render_results_table
    return render_results_csv
