"""Implementation of the `bibsmith save` command."""

from __future__ import annotations

import typer

from bibsmith.core.exceptions import ConfigurationError, LoadError, SaveError
from bibsmith.core.loading import load_database
from bibsmith.core.writer import BibDatabaseWriter

from .._options import (
    BackupOption,
    ConfigOption,
    DryRunOption,
    EncodingOption,
    ExportOption,
    InputEncodingOption,
    InputPathArgument,
    OutputPathOption,
    PlainOption,
    SortOption,
    StrictEncodingOption,
)
from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state
from ..utils import apply_sort_request, resolve_preferences


def save(
    input_path: InputPathArgument,
    output: OutputPathOption = None,
    config: ConfigOption = None,
    input_encoding: InputEncodingOption = "utf-8",
    encoding: EncodingOption = None,
    sort: SortOption = None,
    export: ExportOption = False,
    plain: PlainOption = None,
    backup: BackupOption = None,
    strict_encoding: StrictEncodingOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Normalise a BibTeX file: ordered strings, sorted entries, consistent layout."""

    state = get_cli_state()
    try:
        prefs = resolve_preferences(
            config=config,
            sort=sort,
            encoding=encoding,
            plain=plain,
            backup=backup,
            strict_encoding=strict_encoding,
            export=export,
        )
        context = load_database(input_path, encoding=input_encoding)
    except (ConfigurationError, LoadError) as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    apply_sort_request(context, prefs)

    writer = BibDatabaseWriter(emitter=CliEmitter(state))
    try:
        session = writer.save_database(context, prefs)
    except SaveError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    with session:
        if dry_run:
            state.console.print(
                session.read_text(),
                end="",
                markup=False,
                highlight=False,
                emoji=False,
                soft_wrap=True,
            )
            return
        target = output or input_path
        backup_path = session.commit(target)

    writer.emitter.event(
        "save_committed",
        {"target": str(target), "backup": str(backup_path) if backup_path else None},
    )


__all__ = ["save"]
