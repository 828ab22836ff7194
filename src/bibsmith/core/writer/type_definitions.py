"""Collect custom entry types used by written entries."""

from __future__ import annotations

from bibsmith.core.model import BibEntry, CustomType, DatabaseMode, EntryTypeRegistry

from .session import TextSink


class TypeDefinitionCollector:
    """Remember the custom types of written entries.

    Standard types, customised or not, are never declared. Entries whose type
    is unknown to the registry are written with their raw tag and ignored
    here.
    """

    def __init__(self, registry: EntryTypeRegistry, mode: DatabaseMode) -> None:
        self.registry = registry
        self.mode = mode
        self.definitions: dict[str, CustomType] = {}

    def observe(self, entry: BibEntry) -> None:
        resolved = self.registry.resolve(entry.entry_type, self.mode)
        if isinstance(resolved, CustomType):
            self.definitions[resolved.name] = resolved

    def write(self, out: TextSink) -> None:
        for name in sorted(self.definitions):
            out.write("\n\n")
            out.write(self.definitions[name].serialize())
            out.write("\n")


__all__ = ["TypeDefinitionCollector"]
