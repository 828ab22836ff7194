"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
ORDER_PANEL = "Ordering"
OUTPUT_PANEL = "Output"

InputPathArgument = Annotated[
    Path,
    typer.Argument(
        metavar="INPUT",
        help="BibTeX file (.bib) to load.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

InputEncodingOption = Annotated[
    str,
    typer.Option(
        "--input-encoding",
        help="Character set used to read INPUT.",
        rich_help_panel=INPUTS_PANEL,
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="TOML file whose [save] table provides default save preferences.",
        exists=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

SortOption = Annotated[
    list[str] | None,
    typer.Option(
        "--sort",
        "-s",
        metavar="FIELD[:desc]",
        help="Sort criterion; repeat up to three times. Disables original order.",
        rich_help_panel=ORDER_PANEL,
    ),
]

ExportOption = Annotated[
    bool,
    typer.Option(
        "--export",
        help="Treat the save as an export: ignore crossref ordering and stored sort order.",
        rich_help_panel=ORDER_PANEL,
    ),
]

OutputPathOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Destination file. Defaults to overwriting INPUT.",
        dir_okay=False,
        resolve_path=True,
        rich_help_panel=OUTPUT_PANEL,
    ),
]

EncodingOption = Annotated[
    str | None,
    typer.Option(
        "--encoding",
        "-e",
        help="Character set of the written file.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

PlainOption = Annotated[
    bool | None,
    typer.Option(
        "--plain/--full",
        help="Write plain BibTeX without the encoding header and metadata comments.",
        show_default=False,
        rich_help_panel=OUTPUT_PANEL,
    ),
]

BackupOption = Annotated[
    bool | None,
    typer.Option(
        "--backup/--no-backup",
        help="Keep a .bak copy of the file being replaced.",
        show_default=False,
        rich_help_panel=OUTPUT_PANEL,
    ),
]

StrictEncodingOption = Annotated[
    bool | None,
    typer.Option(
        "--strict-encoding/--lenient-encoding",
        help="Fail when characters cannot be represented in the output encoding.",
        show_default=False,
        rich_help_panel=OUTPUT_PANEL,
    ),
]

DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Print the result instead of writing it.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]
