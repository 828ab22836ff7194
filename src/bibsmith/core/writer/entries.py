"""Serialisation of single entries."""

from __future__ import annotations

from bibsmith.core.exceptions import FormatError
from bibsmith.core.formatting import FieldFormatter, LatexFieldFormatter
from bibsmith.core.model import KEY_FIELD, BibEntry, DatabaseMode, EntryTypeRegistry

from .session import TextSink


class BibEntryWriter:
    """Write entries as `@Type{key, field = {value}, ...}` blocks.

    Required fields of the entry type come first, then its optional fields,
    then every other field in alphabetical order. Field names are padded so
    the `=` signs line up within an entry.
    """

    def __init__(
        self,
        registry: EntryTypeRegistry,
        formatter: FieldFormatter | None = None,
        *,
        reuse_serialization: bool = True,
    ) -> None:
        self.registry = registry
        self.formatter = formatter or LatexFieldFormatter()
        self.reuse_serialization = reuse_serialization

    def write(self, entry: BibEntry, out: TextSink, mode: DatabaseMode) -> None:
        if self.reuse_serialization and not entry.has_changed:
            out.write(entry.parsed_serialization or "")
            return
        out.write("\n")
        out.write(self.serialize(entry, mode))
        out.write("\n")

    def serialize(self, entry: BibEntry, mode: DatabaseMode) -> str:
        names = self.ordered_fields(entry, mode)
        width = max((len(name) for name in names), default=0)
        lines = [f"@{self.type_name(entry, mode)}{{{entry.key or ''},"]
        assignments: list[str] = []
        for name in names:
            try:
                value = self.formatter.format(entry.fields[name], name)
            except FormatError as exc:
                raise FormatError(f"Cannot write entry '{entry.key or entry.id}': {exc}") from exc
            assignments.append(f"  {name.ljust(width)} = {value}")
        if assignments:
            lines.append(",\n".join(assignments))
        lines.append("}")
        return "\n".join(lines)

    def type_name(self, entry: BibEntry, mode: DatabaseMode) -> str:
        resolved = self.registry.resolve(entry.entry_type, mode)
        if resolved is not None:
            return resolved.name
        raw = entry.entry_type
        return raw[:1].upper() + raw[1:]

    def ordered_fields(self, entry: BibEntry, mode: DatabaseMode) -> list[str]:
        present = {
            name for name, value in entry.fields.items() if name != KEY_FIELD and value != ""
        }
        ordered: list[str] = []
        resolved = self.registry.resolve(entry.entry_type, mode)
        if resolved is not None:
            for name in (*resolved.required, *resolved.optional):
                if name in present and name not in ordered:
                    ordered.append(name)
        ordered.extend(sorted(present.difference(ordered)))
        return ordered


__all__ = ["BibEntryWriter"]
