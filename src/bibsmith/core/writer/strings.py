"""Writing of `@String` definitions in a BibTeX-safe order.

BibTeX reads a file in a single pass, so a string must be defined before any
string that references it. Strings are written alphabetically within each
category; whenever a string refers to another one that has not been written
yet, the referenced string is written first.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import re

from bibsmith.core.exceptions import FormatError
from bibsmith.core.formatting import (
    BIBTEX_STRING,
    REFERENCE_LABEL,
    FieldFormatter,
    LatexFieldFormatter,
)
from bibsmith.core.model import BibtexString, StringCategory

from .session import TextSink


REFERENCE_RE = re.compile(f"#({REFERENCE_LABEL})#")


@dataclass(slots=True)
class _StringEmission:
    """State of one pass over the strings of a database."""

    pending: dict[str, BibtexString]
    max_name_length: int
    previous_category: StringCategory = StringCategory.AUTHOR
    written: list[str] = field(default_factory=list)


def sort_strings(strings: Iterable[BibtexString]) -> list[BibtexString]:
    return sorted(strings, key=lambda string: (string.name.casefold(), string.name))


def referenced_names(content: str) -> list[str]:
    """Return the distinct string names referenced by `content`, in order."""
    names: list[str] = []
    for match in REFERENCE_RE.finditer(content):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def write_strings(
    out: TextSink,
    strings: Iterable[BibtexString],
    formatter: FieldFormatter | None = None,
) -> list[str]:
    """Write every string once; return the names in the order written."""
    formatter = formatter or LatexFieldFormatter()
    ordered = sort_strings(strings)
    state = _StringEmission(
        pending={string.name: string for string in ordered},
        max_name_length=max((len(string.name) for string in ordered), default=0),
    )

    for category in StringCategory:
        for string in ordered:
            if string.category is category and string.name in state.pending:
                _write_string(out, string, state, formatter)
    return state.written


def _write_string(
    out: TextSink,
    string: BibtexString,
    state: _StringEmission,
    formatter: FieldFormatter,
) -> None:
    # Removing the string first stops reference cycles from recursing forever.
    del state.pending[string.name]

    for name in referenced_names(string.content):
        referred = state.pending.get(name)
        if referred is not None:
            _write_string(out, referred, state, formatter)

    state.written.append(string.name)
    if not string.has_changed:
        # The stored text carries its own surrounding whitespace.
        out.write(string.parsed_serialization or "")
        return

    if state.previous_category is not string.category:
        out.write("\n")
        state.previous_category = string.category

    padding = " " * (state.max_name_length - len(string.name))
    out.write(f"@String {{ {string.name}{padding} = ")
    if not string.content:
        out.write("{}")
    else:
        try:
            out.write(formatter.format(string.content, BIBTEX_STRING))
        except FormatError as exc:
            raise FormatError(f"Cannot write string '{string.name}': {exc}") from exc
    out.write(" }\n")


__all__ = ["REFERENCE_RE", "referenced_names", "sort_strings", "write_strings"]
