"""BibTeX database writer.

The writer turns a `DatabaseContext` into a `SaveSession` holding the complete
file content. Callers inspect or commit the session; a failed save never
touches the destination.
"""

from __future__ import annotations

from .database import ENCODING_PREFIX, BibDatabaseWriter, save_database, save_part_of_database
from .entries import BibEntryWriter
from .metadata import write_metadata
from .ordering import (
    ComparatorStack,
    CrossRefComparator,
    FieldComparator,
    id_comparator,
    save_comparators,
    sorted_entries,
)
from .save_actions import DEFAULT_ACTIONS, SaveActionRule, SaveActions
from .session import SaveSession, SessionState, VerifyingWriter
from .strings import referenced_names, write_strings
from .type_definitions import TypeDefinitionCollector


__all__ = [
    "DEFAULT_ACTIONS",
    "ENCODING_PREFIX",
    "BibDatabaseWriter",
    "BibEntryWriter",
    "ComparatorStack",
    "CrossRefComparator",
    "FieldComparator",
    "SaveActionRule",
    "SaveActions",
    "SaveSession",
    "SessionState",
    "TypeDefinitionCollector",
    "VerifyingWriter",
    "id_comparator",
    "referenced_names",
    "save_comparators",
    "save_database",
    "save_part_of_database",
    "sorted_entries",
    "write_metadata",
    "write_strings",
]
