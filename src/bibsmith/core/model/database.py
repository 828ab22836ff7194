"""Database container and the context handed to the writer."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from bibsmith.core.exceptions import KeyCollisionError

from .entry import BibEntry
from .entry_types import DatabaseMode, EntryTypeRegistry
from .metadata import DATABASE_TYPE_KEY, MetaData
from .strings import BibtexString


class BibDatabase:
    """Entries, string macros, preamble and epilog of one bibliography file."""

    def __init__(
        self,
        entries: Iterable[BibEntry] | None = None,
        strings: Iterable[BibtexString] | None = None,
        *,
        preamble: str | None = None,
        epilog: str | None = None,
    ) -> None:
        self._entries: dict[str, BibEntry] = {}
        self._strings: dict[str, BibtexString] = {}
        self.preamble = preamble
        self.epilog = epilog
        for entry in entries or ():
            self.insert_entry(entry)
        for string in strings or ():
            self.add_string(string)

    @property
    def entries(self) -> list[BibEntry]:
        return list(self._entries.values())

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def insert_entry(self, entry: BibEntry) -> None:
        self._entries[entry.id] = entry

    def remove_entry(self, entry: BibEntry) -> None:
        self._entries.pop(entry.id, None)

    def get_entry_by_id(self, entry_id: str) -> BibEntry | None:
        return self._entries.get(entry_id)

    def get_entry_by_key(self, key: str) -> BibEntry | None:
        for entry in self._entries.values():
            if entry.key == key:
                return entry
        return None

    def ids(self) -> set[str]:
        return set(self._entries)

    @property
    def strings(self) -> list[BibtexString]:
        return list(self._strings.values())

    def string_names(self) -> list[str]:
        return list(self._strings)

    def get_string(self, name: str) -> BibtexString | None:
        return self._strings.get(name)

    def add_string(self, string: BibtexString) -> None:
        if string.name in self._strings:
            raise KeyCollisionError(f"A string with name '{string.name}' is already defined.")
        self._strings[string.name] = string

    def remove_string(self, name: str) -> None:
        self._strings.pop(name, None)


@dataclass(slots=True)
class DatabaseContext:
    """A database together with its metadata and entry type registry."""

    database: BibDatabase = field(default_factory=BibDatabase)
    metadata: MetaData | None = field(default_factory=MetaData)
    entry_types: EntryTypeRegistry = field(default_factory=EntryTypeRegistry)

    @property
    def mode(self) -> DatabaseMode:
        if self.metadata is None:
            return DatabaseMode.BIBTEX
        values: Sequence[str] = self.metadata.get_data(DATABASE_TYPE_KEY) or ()
        return DatabaseMode.parse(values[0] if values else None)


__all__ = ["BibDatabase", "DatabaseContext"]
