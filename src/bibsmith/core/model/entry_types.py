"""Entry type definitions and their resolution per database mode.

A resolved type is either a `StandardType`, predefined by the target
format and never written to the file, or a `CustomType`, which must be
declared in every file that uses it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
import re


_DECLARATION_RE = re.compile(r"^\s*([^:\s]+)\s*:\s*req\[([^\]]*)\]\s*opt\[([^\]]*)\]\s*$")


class DatabaseMode(str, Enum):
    """Flavour of the target file format."""

    BIBTEX = "bibtex"
    BIBLATEX = "biblatex"

    @classmethod
    def parse(cls, value: str | None) -> DatabaseMode:
        if value and value.strip().lower() == cls.BIBLATEX.value:
            return cls.BIBLATEX
        return cls.BIBTEX


@dataclass(frozen=True, slots=True)
class StandardType:
    name: str
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CustomType:
    name: str
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()

    @classmethod
    def parse(cls, declaration: str) -> CustomType:
        """Read a `Name: req[a;b] opt[c]` declaration."""
        match = _DECLARATION_RE.match(declaration)
        if match is None:
            raise ValueError(f"Malformed entry type declaration: {declaration!r}")
        name, required, optional = match.groups()
        return cls(
            name,
            tuple(part for part in required.split(";") if part),
            tuple(part for part in optional.split(";") if part),
        )

    def serialize(self) -> str:
        required = ";".join(self.required)
        optional = ";".join(self.optional)
        return f"@comment{{{ENTRYTYPE_FLAG}{self.name}: req[{required}] opt[{optional}]}}"


EntryType = StandardType | CustomType

ENTRYTYPE_FLAG = "jabref-entrytype: "


def _standard(name: str, required: str, optional: str = "") -> StandardType:
    return StandardType(name, tuple(required.split()), tuple(optional.split()))


_BIBTEX_TYPES: tuple[StandardType, ...] = (
    _standard("Article", "author title journal year", "volume number pages month note"),
    _standard(
        "Book",
        "title publisher year author editor",
        "volume number series address edition month note",
    ),
    _standard("Booklet", "title", "author howpublished address month year note"),
    _standard(
        "Conference",
        "author title booktitle year",
        "editor volume number series pages address month organization publisher note",
    ),
    _standard(
        "InBook",
        "chapter pages title publisher year author editor",
        "volume number series type address edition month note",
    ),
    _standard(
        "InCollection",
        "author title booktitle publisher year",
        "editor volume number series type chapter pages address edition month note",
    ),
    _standard(
        "InProceedings",
        "author title booktitle year",
        "editor volume number series pages address month organization publisher note",
    ),
    _standard("Manual", "title", "author organization address edition month year note"),
    _standard("MastersThesis", "author title school year", "type address month note"),
    _standard("Misc", "", "author title howpublished month year note"),
    _standard("PhdThesis", "author title school year", "type address month note"),
    _standard(
        "Proceedings",
        "title year",
        "editor volume number series address month organization publisher note",
    ),
    _standard("TechReport", "author title institution year", "type number address month note"),
    _standard("Unpublished", "author title note", "month year"),
)

_BIBLATEX_TYPES: tuple[StandardType, ...] = (
    _standard("Article", "author title journaltitle date", "volume number pages doi note"),
    _standard("Book", "author title date", "editor publisher location isbn edition note"),
    _standard("MvBook", "author title date", "editor publisher location volumes note"),
    _standard("InBook", "author title booktitle date", "bookauthor editor pages publisher note"),
    _standard("BookInBook", "author title booktitle date", "editor pages publisher note"),
    _standard("SuppBook", "author title booktitle date", "editor pages publisher note"),
    _standard("Booklet", "author title date", "howpublished location note"),
    _standard("Collection", "editor title date", "publisher location note"),
    _standard("MvCollection", "editor title date", "publisher location volumes note"),
    _standard("InCollection", "author title booktitle date", "editor pages publisher note"),
    _standard("SuppCollection", "author title booktitle date", "editor pages publisher note"),
    _standard("Manual", "author title date", "organization publisher location note"),
    _standard("Misc", "author title date", "howpublished organization note"),
    _standard("Online", "author title date url", "urldate organization note"),
    _standard("Patent", "author title number date", "holder type location note"),
    _standard("Periodical", "editor title date", "issuetitle volume number note"),
    _standard("SuppPeriodical", "author title journaltitle date", "volume number note"),
    _standard("Proceedings", "title date", "editor publisher location organization note"),
    _standard("MvProceedings", "title date", "editor publisher location volumes note"),
    _standard(
        "InProceedings",
        "author title booktitle date",
        "editor pages organization publisher location note",
    ),
    _standard("Reference", "editor title date", "publisher location note"),
    _standard("MvReference", "editor title date", "publisher location volumes note"),
    _standard("InReference", "author title booktitle date", "editor pages publisher note"),
    _standard("Report", "author title type institution date", "number location note"),
    _standard("Set", "entryset", ""),
    _standard("Thesis", "author title type institution date", "location note"),
    _standard("Unpublished", "author title date", "howpublished note"),
    _standard("MastersThesis", "author title institution date", "type location note"),
    _standard("PhdThesis", "author title institution date", "type location note"),
    _standard("TechReport", "author title institution date", "type number location note"),
    _standard("Conference", "author title booktitle date", "editor pages publisher note"),
    _standard("Electronic", "author title date url", "urldate note"),
    _standard("WWW", "author title date url", "urldate note"),
)

_STANDARD_TYPES: dict[DatabaseMode, dict[str, StandardType]] = {
    DatabaseMode.BIBTEX: {entry_type.name.lower(): entry_type for entry_type in _BIBTEX_TYPES},
    DatabaseMode.BIBLATEX: {
        entry_type.name.lower(): entry_type for entry_type in _BIBLATEX_TYPES
    },
}


class EntryTypeRegistry:
    """Lookup table for standard and user-defined entry types."""

    def __init__(self, custom_types: Iterable[CustomType] | None = None) -> None:
        self._custom: dict[DatabaseMode, dict[str, CustomType]] = {
            mode: {} for mode in DatabaseMode
        }
        for custom in custom_types or ():
            self.register(custom)

    def register(self, entry_type: CustomType, mode: DatabaseMode | None = None) -> None:
        """Register a custom type for one mode, or for every mode when omitted."""
        modes: Sequence[DatabaseMode] = (mode,) if mode is not None else tuple(DatabaseMode)
        for target in modes:
            self._custom[target][entry_type.name.lower()] = entry_type

    def standard_type(self, name: str, mode: DatabaseMode) -> StandardType | None:
        return _STANDARD_TYPES[mode].get(name.lower())

    def resolve(self, name: str, mode: DatabaseMode) -> EntryType | None:
        """Return the type for `name`, preferring the standard definition."""
        standard = self.standard_type(name, mode)
        if standard is not None:
            return standard
        return self._custom[mode].get(name.lower())

    def custom_types(self, mode: DatabaseMode) -> list[CustomType]:
        return sorted(self._custom[mode].values(), key=lambda entry_type: entry_type.name)


__all__ = [
    "ENTRYTYPE_FLAG",
    "CustomType",
    "DatabaseMode",
    "EntryType",
    "EntryTypeRegistry",
    "StandardType",
]
