"""Primary public API for bibsmith."""

from __future__ import annotations

from bibsmith.core.config import (
    SaveOrderConfig,
    SavePreferences,
    SaveType,
    SortCriterion,
    load_preferences,
)
from bibsmith.core.exceptions import (
    BibsmithError,
    ConfigurationError,
    FormatError,
    KeyCollisionError,
    LoadError,
    SaveError,
    SessionStateError,
)
from bibsmith.core.formatting import LatexFieldFormatter
from bibsmith.core.loading import load_database
from bibsmith.core.model import (
    BibDatabase,
    BibEntry,
    BibtexString,
    CustomType,
    DatabaseContext,
    DatabaseMode,
    EntryTypeRegistry,
    GroupTreeNode,
    MetaData,
)
from bibsmith.core.writer import (
    BibDatabaseWriter,
    SaveSession,
    save_database,
    save_part_of_database,
    sorted_entries,
)
from bibsmith.version import get_version


__version__ = get_version()

__all__ = [
    "BibDatabase",
    "BibDatabaseWriter",
    "BibEntry",
    "BibsmithError",
    "BibtexString",
    "ConfigurationError",
    "CustomType",
    "DatabaseContext",
    "DatabaseMode",
    "EntryTypeRegistry",
    "FormatError",
    "GroupTreeNode",
    "KeyCollisionError",
    "LatexFieldFormatter",
    "LoadError",
    "MetaData",
    "SaveError",
    "SaveOrderConfig",
    "SavePreferences",
    "SaveSession",
    "SaveType",
    "SessionStateError",
    "SortCriterion",
    "__version__",
    "get_version",
    "load_database",
    "load_preferences",
    "save_database",
    "save_part_of_database",
    "sorted_entries",
]
