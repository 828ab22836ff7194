"""In-memory representation of a single bibliography entry."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
import itertools
import threading


KEY_FIELD = "bibtexkey"
CROSSREF_FIELD = "crossref"
TYPE_HEADER = "entrytype"

_id_counter = itertools.count(1)
_id_lock = threading.Lock()


def next_entry_id() -> str:
    """Allocate a new entry identifier.

    Identifiers are zero-padded so their lexical order matches the order in
    which they were allocated.
    """
    with _id_lock:
        value = next(_id_counter)
    return f"{value:010d}"


@dataclass(slots=True)
class BibEntry:
    """A bibliography record owned by a `BibDatabase`.

    Field names are stored in lower case. The citation key is kept in the
    `bibtexkey` field like any other field.
    """

    entry_type: str = "misc"
    fields: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=next_entry_id)
    changed: bool = True
    parsed_serialization: str | None = None
    search_hit: bool = False
    group_hit: bool = False

    def __post_init__(self) -> None:
        self.entry_type = self.entry_type.lower()
        self.fields = {name.lower(): value for name, value in self.fields.items()}

    @classmethod
    def create(
        cls,
        entry_type: str,
        key: str | None = None,
        fields: Mapping[str, str] | None = None,
    ) -> BibEntry:
        payload = dict(fields or {})
        if key is not None:
            payload[KEY_FIELD] = key
        return cls(entry_type=entry_type, fields=payload)

    @property
    def key(self) -> str | None:
        return self.fields.get(KEY_FIELD)

    @property
    def has_changed(self) -> bool:
        return self.changed or self.parsed_serialization is None

    def get_field(self, name: str) -> str | None:
        name = name.lower()
        if name == TYPE_HEADER:
            return self.entry_type
        return self.fields.get(name)

    def set_field(self, name: str, value: str) -> None:
        self.fields[name.lower()] = value
        self.changed = True

    def clear_field(self, name: str) -> None:
        if self.fields.pop(name.lower(), None) is not None:
            self.changed = True

    def field_names(self) -> Iterator[str]:
        return iter(self.fields)

    def copy(self) -> BibEntry:
        """Return an independent copy that keeps the same identifier."""
        return BibEntry(
            entry_type=self.entry_type,
            fields=dict(self.fields),
            id=self.id,
            changed=self.changed,
            parsed_serialization=self.parsed_serialization,
            search_hit=self.search_hit,
            group_hit=self.group_hit,
        )


__all__ = [
    "CROSSREF_FIELD",
    "KEY_FIELD",
    "TYPE_HEADER",
    "BibEntry",
    "next_entry_id",
]
