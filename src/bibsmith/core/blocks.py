"""Raw-text scanning of BibTeX sources.

pybtex resolves string references and skips `@comment` blocks, which is what
a bibliography consumer wants but loses what a writer has to keep: the
`#name#` structure of string definitions, the metadata and entry type
comments, the verbatim preamble and the text after the last block. The
helpers below recover those pieces from the source text itself.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import re

from bibsmith.core.exceptions import LoadError


_COMMAND_RE = re.compile(r"@\s*([A-Za-z][\w:-]*)\s*([{(])")
_BARE_TOKEN_RE = re.compile(r"[^\s#{}\"]+")
_UNESCAPED_HASH_RE = re.compile(r"(?<!\\)#")


@dataclass(frozen=True, slots=True)
class RawBlock:
    """One top-level `@command{...}` item of a BibTeX source."""

    command: str
    body: str
    start: int
    end: int


def iter_blocks(text: str) -> Iterator[RawBlock]:
    """Yield the top-level blocks of `text` in source order.

    Scanning stops at the first unterminated block; pybtex reports the
    syntax error for it.
    """
    position = 0
    while True:
        match = _COMMAND_RE.search(text, position)
        if match is None:
            return
        closing = _closing_index(text, match.end(), match.group(2))
        if closing is None:
            return
        yield RawBlock(
            command=match.group(1).lower(),
            body=text[match.end() : closing],
            start=match.start(),
            end=closing + 1,
        )
        position = closing + 1


def _closing_index(text: str, start: int, opener: str) -> int | None:
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return index if opener == "{" else None
            depth -= 1
        elif char == ")" and opener == "(" and depth == 0:
            return index
    return None


def _closing_quote(text: str, start: int) -> int | None:
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == '"' and depth == 0:
            return index
    return None


def parse_value_expression(expression: str) -> str:
    """Convert a BibTeX value expression into `#name#` content.

    ```pycon
    >>> parse_value_expression('aFirst # " Smith"')
    '#aFirst# Smith'
    ```

    Braced and quoted parts keep their inner text, bare names become string
    references and bare numbers are kept as they are.
    """
    pieces: list[str] = []
    position = 0
    length = len(expression)
    while position < length:
        char = expression[position]
        if char.isspace() or char == "#":
            position += 1
            continue
        if char == "{":
            end = _closing_index(expression, position + 1, "{")
        elif char == '"':
            end = _closing_quote(expression, position + 1)
        else:
            match = _BARE_TOKEN_RE.match(expression, position)
            if match is None:
                raise LoadError(f"Unexpected '{char}' in value expression: {expression!r}")
            token = match.group(0)
            pieces.append(token if token.isdigit() else f"#{token}#")
            position = match.end()
            continue
        if end is None:
            raise LoadError(f"Unterminated value expression: {expression!r}")
        pieces.append(_UNESCAPED_HASH_RE.sub(r"\\#", expression[position + 1 : end]))
        position = end + 1
    return "".join(pieces)


def split_meta_values(text: str) -> list[str]:
    """Split a `;`-terminated, backslash-escaped metadata value list.

    Line breaks at the start of a value are layout and are dropped.
    """
    values: list[str] = []
    current: list[str] = []
    escaped = False
    for char in text:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ";":
            values.append("".join(current))
            current = []
        elif char in "\r\n" and not current:
            continue
        else:
            current.append(char)
    remainder = "".join(current)
    if remainder.strip():
        values.append(remainder)
    return values


__all__ = ["RawBlock", "iter_blocks", "parse_value_expression", "split_meta_values"]
