import logging

import pytest

from bibsmith.core.config import SavePreferences, SortCriterion
from bibsmith.core.model import (
    SAVE_ORDER_CONFIG_KEY,
    BibDatabase,
    BibEntry,
    DatabaseContext,
    MetaData,
)
from bibsmith.core.writer import (
    ComparatorStack,
    CrossRefComparator,
    FieldComparator,
    id_comparator,
    sorted_entries,
)


def _keys(entries: list[BibEntry]) -> list[str | None]:
    return [entry.key for entry in entries]


def _context(entries: list[BibEntry], metadata: MetaData | None = None) -> DatabaseContext:
    return DatabaseContext(BibDatabase(entries), metadata if metadata is not None else MetaData())


def test_original_order_places_crossref_targets_first() -> None:
    first = BibEntry.create("article", "a")
    referencing = BibEntry.create("inproceedings", "b", {"crossref": "c"})
    target = BibEntry.create("proceedings", "c")

    ordered = sorted_entries(_context([first, referencing, target]), None, SavePreferences())

    assert _keys(ordered) == ["a", "c", "b"]


def test_crossref_chains_are_ranked_by_depth() -> None:
    outer = BibEntry.create("inbook", "outer", {"crossref": "middle"})
    middle = BibEntry.create("book", "middle", {"crossref": "inner"})
    inner = BibEntry.create("mvbook", "inner")
    comparator = CrossRefComparator(BibDatabase([outer, middle, inner]))

    assert comparator.depth(inner) == 0
    assert comparator.depth(middle) == 1
    assert comparator.depth(outer) == 2


def test_crossref_cycles_and_missing_targets_terminate() -> None:
    left = BibEntry.create("misc", "left", {"crossref": "right"})
    right = BibEntry.create("misc", "right", {"crossref": "left"})
    dangling = BibEntry.create("misc", "dangling", {"crossref": "nowhere"})
    comparator = CrossRefComparator(BibDatabase([left, right, dangling]))

    assert comparator.depth(dangling) == 0
    assert {comparator.depth(left), comparator.depth(right)} == {0, 1}


def test_stored_order_sorts_full_saves() -> None:
    entries = [
        BibEntry.create("article", "old", {"year": "2001"}),
        BibEntry.create("article", "new", {"year": "2020"}),
        BibEntry.create("article", "mid", {"year": "2010"}),
    ]
    metadata = MetaData([(SAVE_ORDER_CONFIG_KEY, ["specified", "year", "true"])])

    ordered = sorted_entries(_context(entries, metadata), None, SavePreferences())

    assert _keys(ordered) == ["new", "mid", "old"]


def test_exports_ignore_stored_order_and_crossrefs() -> None:
    entries = [
        BibEntry.create("article", "b", {"title": "Beta", "crossref": "a"}),
        BibEntry.create("article", "a", {"title": "Gamma"}),
        BibEntry.create("article", "c", {"title": "Alpha"}),
    ]
    metadata = MetaData([(SAVE_ORDER_CONFIG_KEY, ["original"])])
    prefs = SavePreferences(
        is_save_operation=False,
        sort_criteria=[SortCriterion(field="title")],
    )

    ordered = sorted_entries(_context(entries, metadata), None, prefs)

    assert _keys(ordered) == ["c", "b", "a"]


def test_exports_can_keep_original_order() -> None:
    entries = [BibEntry.create("misc", "z"), BibEntry.create("misc", "a")]
    prefs = SavePreferences(is_save_operation=False, export_in_original_order=True)

    assert _keys(sorted_entries(_context(entries), None, prefs)) == ["z", "a"]


def test_missing_metadata_keeps_insertion_order() -> None:
    entries = [
        BibEntry.create("misc", "b", {"crossref": "a"}),
        BibEntry.create("misc", "a"),
    ]
    context = DatabaseContext(BibDatabase(entries), metadata=None)

    assert _keys(sorted_entries(context, None, SavePreferences())) == ["b", "a"]


def test_selection_by_ids() -> None:
    entries = [BibEntry.create("misc", key) for key in ("a", "b", "c")]
    wanted = [entries[2].id, entries[0].id]

    assert _keys(sorted_entries(_context(entries), wanted, SavePreferences())) == ["a", "c"]


def test_malformed_stored_order_falls_back_to_original(
    caplog: pytest.LogCaptureFixture,
) -> None:
    entries = [BibEntry.create("misc", "z"), BibEntry.create("misc", "a")]
    metadata = MetaData([(SAVE_ORDER_CONFIG_KEY, ["sideways"])])

    with caplog.at_level(logging.WARNING):
        ordered = sorted_entries(_context(entries, metadata), None, SavePreferences())

    assert _keys(ordered) == ["z", "a"]
    assert any("save order" in record.message for record in caplog.records)


def test_field_comparator_uses_first_author_last_name() -> None:
    comparator = FieldComparator("author")
    zed = BibEntry.create("misc", "z", {"author": "Zed, Anna and Adams, Bob"})
    brown = BibEntry.create("misc", "b", {"author": "Carol {Brown}"})

    assert comparator(brown, zed) < 0


def test_field_comparator_compares_integers_numerically() -> None:
    comparator = FieldComparator("year")
    early = BibEntry.create("misc", "e", {"year": "9"})
    late = BibEntry.create("misc", "l", {"year": "10"})

    assert comparator(early, late) < 0
    assert FieldComparator("year", descending=True)(early, late) > 0


def test_empty_field_comparator_always_ties() -> None:
    first = BibEntry.create("misc", "a")
    second = BibEntry.create("misc", "b")
    assert FieldComparator("")(first, second) == 0


def test_comparator_stack_falls_through_ties() -> None:
    first = BibEntry.create("misc", "same", {"title": "T"})
    second = BibEntry.create("misc", "same", {"title": "T"})
    stack = ComparatorStack([FieldComparator("title"), id_comparator])

    assert stack.sort([second, first]) == [first, second]
    assert stack(first, second) == -1


def test_sorting_is_deterministic_on_ties() -> None:
    entries = [BibEntry.create("misc", "same", {"year": "2020"}) for _ in range(4)]
    metadata = MetaData([(SAVE_ORDER_CONFIG_KEY, ["specified", "year", "false"])])
    context = _context(list(reversed(entries)), metadata)

    first = sorted_entries(context, None, SavePreferences())
    second = sorted_entries(context, None, SavePreferences())

    assert first == second == entries


def test_mixed_numeric_and_text_values_sort_consistently() -> None:
    comparator = FieldComparator("volume")
    nine, ten, text = (
        BibEntry.create("misc", key, {"volume": volume})
        for key, volume in (("nine", "9"), ("ten", "10"), ("text", "1a"))
    )

    assert comparator(nine, ten) < 0
    assert comparator(ten, text) < 0
    assert comparator(nine, text) < 0

    stack = ComparatorStack([comparator, id_comparator])
    assert _keys(stack.sort([text, ten, nine])) == ["nine", "ten", "text"]
    assert _keys(stack.sort([ten, nine, text])) == ["nine", "ten", "text"]


def test_unknown_ids_are_reported(caplog: pytest.LogCaptureFixture) -> None:
    entries = [BibEntry.create("misc", key) for key in ("a", "b")]

    with caplog.at_level(logging.WARNING):
        ordered = sorted_entries(_context(entries), [entries[1].id, "ghost"], SavePreferences())

    assert _keys(ordered) == ["b"]
    assert any("1 requested entries" in record.message for record in caplog.records)
