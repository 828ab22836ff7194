"""Hierarchical group tree stored alongside a database.

Each group knows how to serialise itself as a single line. The tree is
flattened depth-first into `"<depth> <group>"` lines, which the metadata
writer stores in a `groupstree` comment block.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
import logging

from bibsmith.core.blocks import split_meta_values
from bibsmith.core.formatting import quote


logger = logging.getLogger(__name__)

GROUPS_VERSION = 3


class GroupHierarchy(IntEnum):
    """How a group combines with its parent."""

    INDEPENDENT = 0
    REFINING = 1
    INCLUDING = 2


def _q(text: str) -> str:
    return quote(text, ";", "\\")


def _flag(value: bool) -> str:
    return "1" if value else "0"


@dataclass(slots=True)
class AllEntriesGroup:
    """Implicit root group containing every entry."""

    name: str = "All Entries"

    def serialize(self) -> str:
        return "AllEntriesGroup:"


@dataclass(slots=True)
class ExplicitGroup:
    """Group with an explicit list of member citation keys."""

    name: str
    context: GroupHierarchy = GroupHierarchy.INDEPENDENT
    keys: Sequence[str] = ()

    def serialize(self) -> str:
        parts = [f"ExplicitGroup:{_q(self.name)};{int(self.context)};"]
        parts.extend(f"{_q(key)};" for key in sorted(self.keys))
        return "".join(parts)


@dataclass(slots=True)
class KeywordGroup:
    """Group matching entries whose field contains an expression."""

    name: str
    field: str
    expression: str
    context: GroupHierarchy = GroupHierarchy.INDEPENDENT
    case_sensitive: bool = False
    regex: bool = False

    def serialize(self) -> str:
        return (
            f"KeywordGroup:{_q(self.name)};{int(self.context)};"
            f"{_q(self.field)};{_q(self.expression)};"
            f"{_flag(self.case_sensitive)};{_flag(self.regex)};"
        )


@dataclass(slots=True)
class SearchGroup:
    """Group defined by a free-text search expression."""

    name: str
    expression: str
    context: GroupHierarchy = GroupHierarchy.INDEPENDENT
    case_sensitive: bool = False
    regex: bool = False

    def serialize(self) -> str:
        return (
            f"SearchGroup:{_q(self.name)};{int(self.context)};"
            f"{_q(self.expression)};"
            f"{_flag(self.case_sensitive)};{_flag(self.regex)};"
        )


Group = AllEntriesGroup | ExplicitGroup | KeywordGroup | SearchGroup


def parse_group(text: str) -> Group:
    """Rebuild a group from its serialised form.

    Raises `ValueError` for unknown group kinds or missing fields.
    """
    kind, separator, rest = text.partition(":")
    if not separator:
        raise ValueError(f"Not a group definition: {text!r}")
    tokens = split_meta_values(rest)
    if kind == "AllEntriesGroup":
        return AllEntriesGroup()
    if kind == "ExplicitGroup":
        name, context, *keys = tokens
        return ExplicitGroup(name, GroupHierarchy(int(context)), tuple(keys))
    if kind == "KeywordGroup":
        name, context, field_name, expression, case_sensitive, regex = tokens
        return KeywordGroup(
            name,
            field_name,
            expression,
            GroupHierarchy(int(context)),
            case_sensitive == "1",
            regex == "1",
        )
    if kind == "SearchGroup":
        name, context, expression, case_sensitive, regex = tokens
        return SearchGroup(
            name,
            expression,
            GroupHierarchy(int(context)),
            case_sensitive == "1",
            regex == "1",
        )
    raise ValueError(f"Unknown group kind '{kind}'")


@dataclass(slots=True)
class GroupTreeNode:
    """Node of the group tree."""

    group: Group
    children: list[GroupTreeNode] = field(default_factory=list)

    @classmethod
    def root(cls) -> GroupTreeNode:
        return cls(AllEntriesGroup())

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> GroupTreeNode:
        """Rebuild a tree from `"<depth> <group>"` lines.

        Malformed lines are logged and skipped; their children attach to the
        closest valid ancestor.
        """
        root: GroupTreeNode | None = None
        path: list[GroupTreeNode] = []
        for line in lines:
            depth_text, _, payload = line.strip().partition(" ")
            try:
                depth = int(depth_text)
                group = parse_group(payload)
            except ValueError as exc:
                logger.warning("Skipping group line %r: %s", line, exc)
                continue
            node = cls(group)
            if root is None or depth == 0:
                root = node
                path = [node]
                continue
            del path[depth:]
            path[-1].add_child(node)
            path.append(node)
        return root if root is not None else cls.root()

    def add_child(self, child: GroupTreeNode | Group) -> GroupTreeNode:
        node = child if isinstance(child, GroupTreeNode) else GroupTreeNode(child)
        self.children.append(node)
        return node

    @property
    def child_count(self) -> int:
        return len(self.children)

    def walk(self, depth: int = 0) -> Iterator[tuple[int, GroupTreeNode]]:
        """Yield `(depth, node)` pairs in depth-first pre-order."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)

    def tree_as_string(self) -> str:
        return "\n".join(f"{depth} {node.group.serialize()}" for depth, node in self.walk())


__all__ = [
    "GROUPS_VERSION",
    "AllEntriesGroup",
    "ExplicitGroup",
    "Group",
    "GroupHierarchy",
    "GroupTreeNode",
    "KeywordGroup",
    "SearchGroup",
    "parse_group",
]
