"""Implementation of the `bibsmith order` command."""

from __future__ import annotations

from rich import box
from rich.table import Table
import typer

from bibsmith.core.exceptions import ConfigurationError, LoadError
from bibsmith.core.loading import load_database
from bibsmith.core.writer import sorted_entries

from .._options import (
    ConfigOption,
    ExportOption,
    InputEncodingOption,
    InputPathArgument,
    SortOption,
)
from ..state import emit_error, get_cli_state
from ..utils import apply_sort_request, resolve_preferences


def order(
    input_path: InputPathArgument,
    config: ConfigOption = None,
    input_encoding: InputEncodingOption = "utf-8",
    sort: SortOption = None,
    export: ExportOption = False,
) -> None:
    """List entries in the order a save would write them."""

    state = get_cli_state()
    try:
        prefs = resolve_preferences(config=config, sort=sort, export=export)
        context = load_database(input_path, encoding=input_encoding)
    except (ConfigurationError, LoadError) as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    apply_sort_request(context, prefs)

    table = Table(title="Save Order", box=box.SQUARE, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Key", style="green", no_wrap=True)
    table.add_column("Type")
    table.add_column("Crossref")
    for position, entry in enumerate(sorted_entries(context, None, prefs), start=1):
        table.add_row(
            str(position),
            entry.key or "-",
            entry.entry_type,
            entry.get_field("crossref") or "",
        )
    state.console.print(table)


__all__ = ["order"]
