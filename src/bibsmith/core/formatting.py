"""Formatting of field and string values into BibTeX syntax.

`LatexFieldFormatter.format` turns a raw value into the right-hand side of a
BibTeX assignment. Plain text is wrapped in braces; `#label#` sequences are
string references and are written bare, concatenated with ` # `:

```pycon
>>> LatexFieldFormatter().format("#jan# 2020", "month")
'jan # { 2020}'
>>> LatexFieldFormatter().format("A title", "title")
'{A title}'
```

A literal hash must be escaped as `\\#`. An unpaired hash or unbalanced curly
braces raise `FormatError` since the output would not parse back.
"""

from __future__ import annotations

import re
from typing import Protocol

from bibsmith.core.exceptions import FormatError


BIBTEX_STRING = "__string"

REFERENCE_LABEL = r"[A-Za-z][A-Za-z0-9_:.+-]*"
REFERENCE_LABEL_RE = re.compile(REFERENCE_LABEL)

_HASH_HELP = (
    "The # character is not allowed in BibTeX strings unless escaped as in '\\#'.\n"
    "Before saving, please edit any strings containing the # character."
)


class FieldFormatter(Protocol):
    """Turns a raw value into the right-hand side of a BibTeX assignment."""

    def format(self, value: str | None, field: str) -> str: ...


def quote(text: str, specials: str, escape: str) -> str:
    """Prefix every special character (and the escape character) with `escape`."""
    result: list[str] = []
    for char in text:
        if char in specials or char == escape:
            result.append(escape)
        result.append(char)
    return "".join(result)


def unify_line_breaks(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


class LatexFieldFormatter:
    """Default value formatter used for entries and string macros."""

    def format(self, value: str | None, field: str) -> str:
        if value is None:
            return "{}"

        text = unify_line_breaks(value)
        pieces: list[str] = []
        pivot = 0
        length = len(text)
        while pivot < length:
            start = _find_unescaped_hash(text, pivot)
            if start == -1:
                pieces.append(self._text(text[pivot:], field))
                break
            end = text.find("#", start + 1)
            if end == -1:
                if field == BIBTEX_STRING:
                    raise FormatError(_HASH_HELP)
                raise FormatError(
                    f"Unpaired '#' in field '{field}'; escape it as '\\#' or close the "
                    "string reference."
                )
            if start > pivot:
                pieces.append(self._text(text[pivot:start], field))
            label = text[start + 1 : end]
            if label:
                if REFERENCE_LABEL_RE.fullmatch(label) is None:
                    raise FormatError(
                        f"'#{label}#' in field '{field}' is not a valid string reference; "
                        "escape literal hashes as '\\#'."
                    )
                pieces.append(label)
            pivot = end + 1

        if not pieces:
            return "{}"
        return " # ".join(pieces)

    def _text(self, text: str, field: str) -> str:
        _check_braces(text, field)
        return "{" + text + "}"


def _find_unescaped_hash(text: str, start: int) -> int:
    position = text.find("#", start)
    while position > 0 and text[position - 1] == "\\":
        position = text.find("#", position + 1)
    return position


def _check_braces(text: str, field: str) -> None:
    depth = 0
    for index, char in enumerate(text):
        if char == "\\":
            continue
        if char == "{" and (index == 0 or text[index - 1] != "\\"):
            depth += 1
        elif char == "}" and (index == 0 or text[index - 1] != "\\"):
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        target = "string" if field == BIBTEX_STRING else f"field '{field}'"
        raise FormatError(f"Curly braces {{ and }} must be balanced in {target}.")


__all__ = [
    "BIBTEX_STRING",
    "REFERENCE_LABEL",
    "REFERENCE_LABEL_RE",
    "FieldFormatter",
    "LatexFieldFormatter",
    "quote",
    "unify_line_breaks",
]
