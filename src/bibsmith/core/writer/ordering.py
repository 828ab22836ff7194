"""Entry ordering for saves and exports.

Three strategies are supported:

1. original order: entries keep their creation order, except that an entry
   carrying a `crossref` to another entry is placed after the entry it
   refers to;
2. the order stored in the database metadata (`saveOrderConfig`), used for
   full saves only;
3. the sort criteria from the save preferences.

Strategies are expressed as a `ComparatorStack`: the first comparator that
does not tie decides. Sorted stacks always end with the citation key and
the entry id so the resulting order is total.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from functools import cmp_to_key
import logging
import re

from bibsmith.core.config import SaveOrderConfig, SavePreferences, SortCriterion
from bibsmith.core.model import (
    CROSSREF_FIELD,
    KEY_FIELD,
    SAVE_ORDER_CONFIG_KEY,
    BibDatabase,
    BibEntry,
    DatabaseContext,
    MetaData,
)


logger = logging.getLogger(__name__)

Comparator = Callable[[BibEntry, BibEntry], int]

PERSON_FIELDS = frozenset({"author", "editor"})

_BRACES_RE = re.compile(r"[{}]")
_INTEGER_RE = re.compile(r"^-?\d+$")


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _cmp(first: object, second: object) -> int:
    return (first > second) - (first < second)  # type: ignore[operator]


class ComparatorStack:
    """Combine comparators left to right, stopping at the first non-tie."""

    def __init__(self, comparators: Iterable[Comparator]) -> None:
        self.comparators: tuple[Comparator, ...] = tuple(comparators)

    def __call__(self, first: BibEntry, second: BibEntry) -> int:
        for comparator in self.comparators:
            result = comparator(first, second)
            if result:
                return _sign(result)
        return 0

    def sort(self, entries: Iterable[BibEntry]) -> list[BibEntry]:
        return sorted(entries, key=cmp_to_key(self))


def id_comparator(first: BibEntry, second: BibEntry) -> int:
    return _cmp(first.id, second.id)


class CrossRefComparator:
    """Place entries after the entries they cross-reference.

    Each entry is ranked by the length of its resolvable crossref chain, so
    a referencing entry always ranks strictly above its target. Missing
    targets and cycles end the chain.
    """

    def __init__(self, database: BibDatabase) -> None:
        self._by_key: dict[str, BibEntry] = {}
        for entry in database.entries:
            if entry.key:
                self._by_key.setdefault(entry.key, entry)
        self._depths: dict[str, int] = {}

    def depth(self, entry: BibEntry) -> int:
        cached = self._depths.get(entry.id)
        if cached is not None:
            return cached

        chain: list[BibEntry] = []
        seen: set[str] = set()
        current: BibEntry | None = entry
        base = 0
        while current is not None and current.id not in seen:
            known = self._depths.get(current.id)
            if known is not None:
                base = known + 1
                break
            seen.add(current.id)
            chain.append(current)
            target_key = current.get_field(CROSSREF_FIELD)
            current = self._by_key.get(target_key.strip()) if target_key else None

        # Assign depths from the innermost resolved entry outwards.
        for offset, node in enumerate(reversed(chain)):
            self._depths[node.id] = base + offset
        return self._depths[entry.id]

    def __call__(self, first: BibEntry, second: BibEntry) -> int:
        return _cmp(self.depth(first), self.depth(second))


class FieldComparator:
    """Compare entries on the value of one field."""

    def __init__(self, field: str, descending: bool = False) -> None:
        self.field = field.strip().lower()
        self.descending = descending

    @classmethod
    def from_criterion(cls, criterion: SortCriterion) -> FieldComparator:
        return cls(criterion.field, criterion.descending)

    def _value(self, entry: BibEntry) -> str:
        raw = entry.get_field(self.field) or ""
        if self.field in PERSON_FIELDS:
            raw = _first_last_name(raw)
        return _BRACES_RE.sub("", raw).strip()

    def sort_key(self, entry: BibEntry) -> tuple[int, int, str]:
        """Integers sort numerically and before any other text."""
        value = self._value(entry)
        if _INTEGER_RE.match(value):
            return (0, int(value), "")
        return (1, 0, value.casefold())

    def __call__(self, first: BibEntry, second: BibEntry) -> int:
        if not self.field:
            return 0
        result = _cmp(self.sort_key(first), self.sort_key(second))
        return -result if self.descending else result


def _first_last_name(value: str) -> str:
    first_person = re.split(r"\s+and\s+", value.strip(), maxsplit=1)[0]
    if "," in first_person:
        return first_person.split(",", 1)[0].strip()
    parts = first_person.split()
    return parts[-1] if parts else ""


def _stored_order(metadata: MetaData) -> SaveOrderConfig | None:
    return SaveOrderConfig.from_metadata(metadata.get_data(SAVE_ORDER_CONFIG_KEY))


def should_save_in_original_order(prefs: SavePreferences, metadata: MetaData) -> bool:
    if not prefs.is_save_operation:
        return prefs.export_in_original_order
    stored = _stored_order(metadata)
    return stored is None or stored.save_in_original_order


def save_comparators(
    prefs: SavePreferences, metadata: MetaData, database: BibDatabase
) -> list[Comparator]:
    """Build the comparator list for one save."""
    if should_save_in_original_order(prefs, metadata):
        return [CrossRefComparator(database), id_comparator]

    criteria: Sequence[SortCriterion] = prefs.padded_criteria()
    comparators: list[Comparator] = []
    if prefs.is_save_operation:
        stored = _stored_order(metadata)
        if stored is not None:
            criteria = stored.sort_criteria
        comparators.append(CrossRefComparator(database))

    comparators.extend(FieldComparator.from_criterion(criterion) for criterion in criteria)
    comparators.append(FieldComparator(KEY_FIELD))
    comparators.append(id_comparator)
    return comparators


def sorted_entries(
    context: DatabaseContext,
    ids: Iterable[str] | None,
    prefs: SavePreferences,
) -> list[BibEntry]:
    """Return the entries selected by `ids` in save order.

    `ids=None` selects every entry. Without metadata the entries are returned
    in insertion order.
    """
    database = context.database
    if ids is None:
        selected = database.entries
    else:
        wanted = set(ids)
        selected = [entry for entry in database.entries if entry.id in wanted]
        missing = len(wanted) - len(selected)
        if missing:
            logger.warning("Skipping %d requested entries not found in the database", missing)

    if context.metadata is None:
        return selected

    stack = ComparatorStack(save_comparators(prefs, context.metadata, database))
    logger.debug(
        "Sorting %d entries with %d comparators", len(selected), len(stack.comparators)
    )
    return stack.sort(selected)


__all__ = [
    "PERSON_FIELDS",
    "Comparator",
    "ComparatorStack",
    "CrossRefComparator",
    "FieldComparator",
    "id_comparator",
    "save_comparators",
    "should_save_in_original_order",
    "sorted_entries",
]
