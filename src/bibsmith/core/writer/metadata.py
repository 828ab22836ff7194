"""Encoding of database metadata as `@comment` blocks."""

from __future__ import annotations

from bibsmith.core.formatting import quote
from bibsmith.core.model import (
    GROUPS_TREE_KEY,
    GROUPS_VERSION,
    GROUPS_VERSION_KEY,
    META_FLAG,
    MetaData,
)

from .session import TextSink


def escape_meta_value(value: str) -> str:
    return quote(value, ";", "\\")


def write_metadata(out: TextSink, metadata: MetaData | None) -> None:
    """Write plain metadata blocks, then the group tree when it has groups."""
    if metadata is None:
        return

    for key in metadata:
        values = metadata.get_data(key) or []
        parts = ["\n\n", f"@comment{{{META_FLAG}{key}:"]
        parts.extend(f"{escape_meta_value(value)};" for value in values)
        parts.append("}")
        out.write("".join(parts))

    groups = metadata.groups
    if groups is None or groups.child_count == 0:
        return

    out.write(f"\n\n@comment{{{META_FLAG}{GROUPS_VERSION_KEY}:{GROUPS_VERSION};}}")

    # One physical line per tree node; values cannot span lines otherwise.
    parts = ["\n\n", f"@comment{{{META_FLAG}{GROUPS_TREE_KEY}:", "\n"]
    for line in groups.tree_as_string().split("\n"):
        if not line:
            continue
        parts.append(f"{escape_meta_value(line)};\n")
    parts.append("}")
    out.write("".join(parts))


__all__ = ["escape_meta_value", "write_metadata"]
