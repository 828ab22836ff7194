"""Build database contexts from BibTeX files.

Entries are parsed by pybtex. Everything pybtex resolves or skips is read
from the raw text instead, so a loaded file saves back to the same bytes:
string definitions keep their `#name#` references, the preamble is kept
verbatim, `jabref-meta` comments fill the metadata and group tree,
`jabref-entrytype` comments register custom types and the text after the
last block becomes the epilog.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import io
import logging
from pathlib import Path

from pybtex.database import BibliographyData, Entry, Person
from pybtex.database.input import bibtex
from pybtex.exceptions import PybtexError

from bibsmith.core.blocks import iter_blocks, parse_value_expression, split_meta_values
from bibsmith.core.exceptions import LoadError
from bibsmith.core.model import (
    ENTRYTYPE_FLAG,
    GROUPS_TREE_KEY,
    KEY_FIELD,
    META_FLAG,
    BibDatabase,
    BibEntry,
    BibtexString,
    CustomType,
    DatabaseContext,
    EntryTypeRegistry,
    GroupTreeNode,
    MetaData,
)


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RawLayout:
    """Parts of a BibTeX source that pybtex does not preserve."""

    strings: list[BibtexString] = field(default_factory=list)
    preamble: str | None = None
    epilog: str | None = None
    metadata: MetaData = field(default_factory=MetaData)
    custom_types: list[CustomType] = field(default_factory=list)


def load_database(path: Path | str, *, encoding: str = "utf-8") -> DatabaseContext:
    """Parse a BibTeX file into a `DatabaseContext`."""
    file_path = Path(path)
    try:
        payload = file_path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadError(f"Failed to read '{file_path}': {exc}") from exc
    return load_database_from_string(payload, source=file_path)


def load_database_from_string(payload: str, *, source: Path | str | None = None) -> DatabaseContext:
    label = f"'{source}'" if source is not None else "inline payload"
    try:
        data = bibtex.Parser().parse_stream(io.StringIO(payload))
    except PybtexError as exc:
        raise LoadError(f"Failed to parse {label}: {exc}") from exc

    layout = read_raw_layout(payload)
    context = database_context_from_bibliography_data(
        data,
        strings=layout.strings,
        metadata=layout.metadata,
        custom_types=layout.custom_types,
    )
    if layout.preamble is not None:
        context.database.preamble = layout.preamble
    context.database.epilog = layout.epilog
    logger.debug(
        "Loaded %d entries and %d strings from %s",
        context.database.entry_count,
        len(layout.strings),
        label,
    )
    return context


def read_raw_layout(payload: str) -> RawLayout:
    """Collect strings, preamble, metadata, entry types and epilog from `payload`."""
    layout = RawLayout()
    strings: dict[str, BibtexString] = {}
    preambles: list[str] = []
    groups: GroupTreeNode | None = None
    last_end: int | None = None

    for block in iter_blocks(payload):
        last_end = block.end
        if block.command == "string":
            string = _read_string(block.body)
            strings[string.name] = string
        elif block.command == "preamble":
            preambles.append(block.body.strip())
        elif block.command == "comment":
            body = block.body.strip()
            if body.startswith(META_FLAG):
                key, _, values = body[len(META_FLAG) :].partition(":")
                if key == GROUPS_TREE_KEY:
                    groups = GroupTreeNode.from_lines(split_meta_values(values))
                else:
                    layout.metadata.put_data(key, split_meta_values(values))
            elif body.startswith(ENTRYTYPE_FLAG):
                try:
                    layout.custom_types.append(CustomType.parse(body[len(ENTRYTYPE_FLAG) :]))
                except ValueError as exc:
                    logger.warning("Ignoring entry type declaration: %s", exc)

    layout.strings = list(strings.values())
    layout.metadata.groups = groups
    if preambles:
        layout.preamble = " # ".join(preambles)
    if last_end is not None:
        layout.epilog = payload[last_end:].lstrip() or None
    return layout


def _read_string(body: str) -> BibtexString:
    name, separator, expression = body.partition("=")
    if not separator or not name.strip():
        raise LoadError(f"Malformed string definition: {body.strip()!r}")
    return BibtexString(name.strip(), parse_value_expression(expression))


def database_context_from_bibliography_data(
    data: BibliographyData,
    *,
    strings: Iterable[BibtexString] = (),
    metadata: MetaData | None = None,
    custom_types: Iterable[CustomType] = (),
) -> DatabaseContext:
    """Convert pybtex data into the writer's model."""
    entries = [_convert_entry(str(key), entry) for key, entry in data.entries.items()]
    preamble = data.preamble or None
    database = BibDatabase(entries, strings, preamble=preamble)
    return DatabaseContext(
        database=database,
        metadata=metadata if metadata is not None else MetaData(),
        entry_types=EntryTypeRegistry(custom_types),
    )


def _convert_entry(key: str, entry: Entry) -> BibEntry:
    fields: dict[str, str] = {str(name).lower(): str(value) for name, value in entry.fields.items()}
    for role, persons in entry.persons.items():
        names = [_person_text(person) for person in persons]
        fields[str(role).lower()] = " and ".join(name for name in names if name)
    fields[KEY_FIELD] = key
    return BibEntry(entry_type=str(entry.type), fields=fields)


def _person_text(person: Person) -> str:
    return str(person).strip()


__all__ = [
    "LoadError",
    "RawLayout",
    "database_context_from_bibliography_data",
    "load_database",
    "load_database_from_string",
    "read_raw_layout",
]
