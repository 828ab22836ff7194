"""Whole-database serialisation into a save session.

Architecture
: `BibDatabaseWriter` drives one pass over a `SaveSession`: header, preamble,
  strings, entries, metadata, custom type declarations and epilog, in that
  order. Nothing reaches the destination file until the caller commits the
  returned session.
: Ordering, save actions, string ordering, metadata encoding and type
  collection live in sibling modules; this module only sequences them and
  owns the failure policy.

Failure policy
: Any `OSError` or `FormatError` cancels the session and surfaces as
  `SaveError`, carrying the entry that was being written, if any.

Usage Example

```pycon
>>> from bibsmith.core.model import BibDatabase, BibEntry, DatabaseContext
>>> from bibsmith.core.config import SavePreferences
>>> database = BibDatabase([BibEntry.create("article", "doe2023", {"title": "Example"})])
>>> session = BibDatabaseWriter().save_database(DatabaseContext(database), SavePreferences())
>>> "@Article{doe2023," in session.read_text()
True
>>> session.cancel()
```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging

from bibsmith.core.config import SavePreferences
from bibsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from bibsmith.core.exceptions import FormatError, SaveError
from bibsmith.core.formatting import FieldFormatter, LatexFieldFormatter
from bibsmith.core.model import BibDatabase, BibEntry, DatabaseContext

from .entries import BibEntryWriter
from .metadata import write_metadata
from .ordering import sorted_entries
from .save_actions import DEFAULT_ACTIONS, FieldAction, SaveActions
from .session import SaveSession, TextSink
from .strings import write_strings
from .type_definitions import TypeDefinitionCollector


logger = logging.getLogger(__name__)

ENCODING_PREFIX = "Encoding: "


class BibDatabaseWriter:
    """Write databases into save sessions."""

    def __init__(
        self,
        *,
        formatter: FieldFormatter | None = None,
        emitter: DiagnosticEmitter | None = None,
        actions: Mapping[str, FieldAction] | None = None,
    ) -> None:
        self.formatter = formatter or LatexFieldFormatter()
        self.emitter = emitter or LoggingEmitter(logger_obj=logger)
        self.actions: dict[str, FieldAction] = {**DEFAULT_ACTIONS, **(actions or {})}

    def save_database(
        self,
        context: DatabaseContext,
        prefs: SavePreferences,
        *,
        check_search: bool = False,
        check_group: bool = False,
    ) -> SaveSession:
        """Write every entry of the database.

        With `check_search` or `check_group`, entries flagged as current
        search or group hits are left out.
        """
        return self.save_part_of_database(
            context,
            context.database.entries,
            prefs,
            check_search=check_search,
            check_group=check_group,
        )

    def save_part_of_database(
        self,
        context: DatabaseContext,
        entries: Iterable[BibEntry],
        prefs: SavePreferences,
        *,
        check_search: bool = False,
        check_group: bool = False,
    ) -> SaveSession:
        """Write the given entries along with the database's strings and metadata."""
        try:
            session = SaveSession(prefs.encoding, prefs.make_backup, newline=prefs.newline)
        except OSError as exc:
            raise SaveError(f"Could not create a temporary file: {exc}") from exc

        current: BibEntry | None = None
        written_entries = 0
        try:
            out = session.writer()
            if not prefs.is_plain:
                self._write_header(out, prefs.encoding)

            database = context.database
            self._write_preamble(out, database.preamble)
            string_names = write_strings(out, database.strings, self.formatter)

            ids = [entry.id for entry in entries]
            ordered = sorted_entries(context, ids, prefs)
            actions = SaveActions.from_metadata(context.metadata, actions=self.actions)
            ordered = actions.apply(ordered)

            mode = context.mode
            entry_writer = BibEntryWriter(context.entry_types, self.formatter)
            collector = TypeDefinitionCollector(context.entry_types, mode)
            for entry in ordered:
                current = entry
                if check_search and entry.search_hit:
                    continue
                if check_group and entry.group_hit:
                    continue
                collector.observe(entry)
                entry_writer.write(entry, out, mode)
                # Stored serializations do not end with a line break.
                if not entry.has_changed:
                    out.write("\n")
                written_entries += 1
            current = None

            if not prefs.is_plain:
                write_metadata(out, context.metadata)
                collector.write(out)

            self._write_epilog(out, database)
            session.finish()
            self._check_encoding(session, prefs)
        except (OSError, FormatError) as exc:
            logger.error("Could not write file: %s", exc)
            session.cancel()
            raise SaveError(str(exc), entry=current) from exc
        except BaseException:
            session.cancel()
            raise

        self.emitter.event(
            "save_written",
            {
                "entries": written_entries,
                "strings": len(string_names),
                "encoding": prefs.encoding,
            },
        )
        return session

    def _write_header(self, out: TextSink, encoding: str) -> None:
        out.write(f"% {ENCODING_PREFIX}{encoding}\n")

    def _write_preamble(self, out: TextSink, preamble: str | None) -> None:
        if preamble is not None:
            out.write(f"@PREAMBLE{{{preamble}}}\n\n")

    def _write_epilog(self, out: TextSink, database: BibDatabase) -> None:
        if database.epilog:
            out.write(database.epilog)
        else:
            out.write("\n")

    def _check_encoding(self, session: SaveSession, prefs: SavePreferences) -> None:
        problems = session.encoding_problems
        if not problems:
            return
        self.emitter.event(
            "encoding_problems",
            {"characters": sorted(problems), "encoding": prefs.encoding},
        )
        if prefs.strict_encoding:
            listed = "".join(sorted(problems))
            raise SaveError(f"The encoding {prefs.encoding} cannot represent: {listed}")


def save_database(
    context: DatabaseContext,
    prefs: SavePreferences | None = None,
    **options: bool,
) -> SaveSession:
    """Convenience wrapper around `BibDatabaseWriter.save_database`."""
    return BibDatabaseWriter().save_database(context, prefs or SavePreferences(), **options)


def save_part_of_database(
    context: DatabaseContext,
    entries: Iterable[BibEntry],
    prefs: SavePreferences | None = None,
    **options: bool,
) -> SaveSession:
    """Convenience wrapper around `BibDatabaseWriter.save_part_of_database`."""
    return BibDatabaseWriter().save_part_of_database(
        context, entries, prefs or SavePreferences(), **options
    )


__all__ = ["ENCODING_PREFIX", "BibDatabaseWriter", "save_database", "save_part_of_database"]
