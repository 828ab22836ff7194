"""In-memory bibliography model consumed by the writer."""

from __future__ import annotations

from .database import BibDatabase, DatabaseContext
from .entry import CROSSREF_FIELD, KEY_FIELD, TYPE_HEADER, BibEntry, next_entry_id
from .entry_types import (
    ENTRYTYPE_FLAG,
    CustomType,
    DatabaseMode,
    EntryType,
    EntryTypeRegistry,
    StandardType,
)
from .groups import (
    GROUPS_VERSION,
    AllEntriesGroup,
    ExplicitGroup,
    Group,
    GroupHierarchy,
    GroupTreeNode,
    KeywordGroup,
    SearchGroup,
    parse_group,
)
from .metadata import (
    DATABASE_TYPE_KEY,
    GROUPS_TREE_KEY,
    GROUPS_VERSION_KEY,
    META_FLAG,
    SAVE_ACTIONS_KEY,
    SAVE_ORDER_CONFIG_KEY,
    MetaData,
)
from .strings import BibtexString, StringCategory


__all__ = [
    "CROSSREF_FIELD",
    "DATABASE_TYPE_KEY",
    "ENTRYTYPE_FLAG",
    "GROUPS_TREE_KEY",
    "GROUPS_VERSION",
    "GROUPS_VERSION_KEY",
    "KEY_FIELD",
    "META_FLAG",
    "SAVE_ACTIONS_KEY",
    "SAVE_ORDER_CONFIG_KEY",
    "TYPE_HEADER",
    "AllEntriesGroup",
    "BibDatabase",
    "BibEntry",
    "BibtexString",
    "CustomType",
    "DatabaseContext",
    "DatabaseMode",
    "EntryType",
    "EntryTypeRegistry",
    "ExplicitGroup",
    "Group",
    "GroupHierarchy",
    "GroupTreeNode",
    "KeywordGroup",
    "MetaData",
    "SearchGroup",
    "StandardType",
    "StringCategory",
    "next_entry_id",
    "parse_group",
]
