from collections.abc import Mapping
from pathlib import Path
import tempfile
from typing import Any

import pytest

from bibsmith.core.config import SavePreferences, SaveType
from bibsmith.core.exceptions import SaveError
from bibsmith.core.model import (
    SAVE_ACTIONS_KEY,
    BibDatabase,
    BibEntry,
    BibtexString,
    CustomType,
    DatabaseContext,
    EntryTypeRegistry,
    ExplicitGroup,
    GroupTreeNode,
    MetaData,
)
from bibsmith.core.writer import BibDatabaseWriter, save_database, save_part_of_database


class RecordingEmitter:
    def __init__(self) -> None:
        self.debug_enabled = False
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


def _sample_context() -> DatabaseContext:
    database = BibDatabase(
        [
            BibEntry.create(
                "article",
                "doe2023",
                {"year": "2023", "title": "Example", "author": "Doe, Jane"},
            )
        ],
        [BibtexString("Y", "#X#v2"), BibtexString("X", "v1")],
    )
    return DatabaseContext(database)


def _render(context: DatabaseContext, prefs: SavePreferences | None = None, **options: bool) -> str:
    with save_database(context, prefs, **options) as session:
        return session.read_text()


def test_full_save_layout() -> None:
    assert _render(_sample_context()) == (
        "% Encoding: UTF-8\n"
        "\n@String { X = {v1} }\n"
        "@String { Y = X # {v2} }\n"
        "\n@Article{doe2023,\n"
        "  author = {Doe, Jane},\n"
        "  title  = {Example},\n"
        "  year   = {2023}\n"
        "}\n"
        "\n"
    )


def test_plain_save_omits_header_and_comments() -> None:
    context = _sample_context()
    assert context.metadata is not None
    context.metadata.put_data("fileDirectory", ["/pdfs"])
    context.entry_types.register(CustomType("Dataset", ("title",)))
    context.database.insert_entry(BibEntry.create("dataset", "d1", {"title": "Data"}))

    text = _render(context, SavePreferences(save_type=SaveType.PLAIN_BIBTEX))

    assert text.startswith("\n@String { X = {v1} }\n")
    assert "% Encoding" not in text
    assert "@comment" not in text
    assert "@Dataset{d1," in text


def test_saving_twice_gives_identical_output() -> None:
    context = _sample_context()
    assert _render(context) == _render(context)


def test_preamble_and_epilog() -> None:
    database = BibDatabase(preamble="\\newcommand{\\noop}[1]{}", epilog="% trailing notes\n")
    text = _render(DatabaseContext(database))

    assert text == "% Encoding: UTF-8\n@PREAMBLE{\\newcommand{\\noop}[1]{}}\n\n% trailing notes\n"


def test_unchanged_entries_are_reused_verbatim() -> None:
    kept = BibEntry.create("article", "keep", {"title": "Rewritten"})
    kept.changed = False
    kept.parsed_serialization = "\n@article{ keep ,title={Kept as is}}"
    text = _render(DatabaseContext(BibDatabase([kept])))

    assert "@article{ keep ,title={Kept as is}}\n" in text
    assert "Rewritten" not in text


def test_search_and_group_filters() -> None:
    hit = BibEntry.create("misc", "hit")
    hit.search_hit = True
    member = BibEntry.create("misc", "member")
    member.group_hit = True
    plain = BibEntry.create("misc", "plain")
    context = DatabaseContext(BibDatabase([hit, member, plain]))

    everything = _render(context)
    filtered = _render(context, check_search=True, check_group=True)

    assert all(f"{{{key}," in everything for key in ("hit", "member", "plain"))
    assert "{hit," not in filtered
    assert "{member," not in filtered
    assert "{plain," in filtered


def test_partial_save_keeps_strings() -> None:
    first = BibEntry.create("misc", "first")
    second = BibEntry.create("misc", "second")
    context = DatabaseContext(BibDatabase([first, second], [BibtexString("acm", "ACM")]))

    with save_part_of_database(context, [second]) as session:
        text = session.read_text()

    assert "@String { acm = {ACM} }" in text
    assert "{second," in text
    assert "{first," not in text


def test_entry_type_declarations() -> None:
    registry = EntryTypeRegistry(
        [CustomType("Dataset", ("author", "title"), ("url",)), CustomType("Article", ("title",))]
    )
    entries = [
        BibEntry.create("dataset", "d1", {"url": "https://example.org", "title": "Data"}),
        BibEntry.create("article", "a1", {"title": "Paper"}),
        BibEntry.create("gadget", "g1", {"note": "odd"}),
    ]
    text = _render(DatabaseContext(BibDatabase(entries), entry_types=registry))

    assert "@Dataset{d1,\n  title = {Data},\n  url   = {https://example.org}\n}" in text
    assert "@Gadget{g1," in text
    assert text.endswith(
        "\n\n@comment{jabref-entrytype: Dataset: req[author;title] opt[url]}\n\n"
    )
    assert "jabref-entrytype: Article" not in text
    assert "jabref-entrytype: Gadget" not in text


def test_metadata_and_groups_follow_entries() -> None:
    groups = GroupTreeNode.root()
    groups.add_child(ExplicitGroup("Reading", keys=["doe2023"]))
    context = _sample_context()
    context.metadata = MetaData([("fileDirectory", ["/pdfs"])], groups=groups)

    text = _render(context)

    assert text.index("@Article{doe2023") < text.index("fileDirectory")
    assert "\n\n@comment{jabref-meta: fileDirectory:/pdfs;}" in text
    assert "@comment{jabref-meta: groupsversion:3;}" in text
    assert "1 ExplicitGroup:Reading\\;0\\;doe2023\\;;\n}" in text


def test_save_actions_do_not_modify_the_database() -> None:
    entry = BibEntry.create("misc", "k", {"title": "quiet"})
    metadata = MetaData([(SAVE_ACTIONS_KEY, ["enabled", "title[upper_case]\n"])])
    context = DatabaseContext(BibDatabase([entry]), metadata)

    text = _render(context)

    assert "title = {QUIET}" in text
    assert entry.get_field("title") == "quiet"


def test_writer_accepts_extra_save_actions() -> None:
    entry = BibEntry.create("misc", "k", {"title": "quiet", "note": "keep"})
    metadata = MetaData(
        [(SAVE_ACTIONS_KEY, ["enabled", "title[shout]\nnote[upper_case]\n"])]
    )
    context = DatabaseContext(BibDatabase([entry]), metadata)
    writer = BibDatabaseWriter(actions={"shout": lambda value: value.upper() + "!"})

    with writer.save_database(context, SavePreferences()) as session:
        text = session.read_text()

    assert "title = {QUIET!}" in text
    assert "note  = {KEEP}" in text


def test_lenient_encoding_reports_problems() -> None:
    entry = BibEntry.create("misc", "k", {"title": "Café"})
    emitter = RecordingEmitter()
    writer = BibDatabaseWriter(emitter=emitter)
    context = DatabaseContext(BibDatabase([entry]))

    with writer.save_database(context, SavePreferences(encoding="ascii")) as session:
        text = session.read_text()
        assert session.encoding_problems == frozenset({"é"})

    assert text.startswith("% Encoding: ascii\n")
    assert "title = {Caf?}" in text
    names = [name for name, _ in emitter.events]
    assert names == ["encoding_problems", "save_written"]
    assert emitter.events[0][1]["characters"] == ["é"]


def test_strict_encoding_fails_the_save() -> None:
    entry = BibEntry.create("misc", "k", {"title": "Café"})
    prefs = SavePreferences(encoding="ascii", strict_encoding=True)

    with pytest.raises(SaveError, match="cannot represent"):
        save_database(DatabaseContext(BibDatabase([entry])), prefs)


def test_format_failure_names_entry_and_leaves_no_temporary_files(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    broken = BibEntry.create("misc", "broken", {"title": "Issue #5"})
    context = DatabaseContext(BibDatabase([BibEntry.create("misc", "fine"), broken]))

    with pytest.raises(SaveError) as excinfo:
        save_database(context)

    assert excinfo.value.entry is broken
    assert "broken" in str(excinfo.value)
    assert list(scratch.iterdir()) == []


def test_written_event_counts_entries_and_strings() -> None:
    emitter = RecordingEmitter()
    with BibDatabaseWriter(emitter=emitter).save_database(_sample_context(), SavePreferences()):
        pass

    assert emitter.events == [
        ("save_written", {"entries": 1, "strings": 2, "encoding": "UTF-8"}),
    ]
