from pathlib import Path
import textwrap

from typer.testing import CliRunner

from bibsmith.ui.cli import app


SOURCE = textwrap.dedent(
    """
    @incollection{smith-chapter,
      author = {Smith, Ann},
      title = {Chapter},
      year = {2021},
      crossref = {collection-2020}
    }

    @collection{collection-2020,
      editor = {Jones, Bob},
      title = {Collected Works},
      year = {2020}
    }

    @misc{zeta-note,
      title = {Zeta},
      year = {2024}
    }
    """
)


def _write_source(tmp_path: Path, content: str = SOURCE) -> Path:
    path = tmp_path / "refs.bib"
    path.write_text(content, encoding="utf-8")
    return path


def test_save_dry_run_prints_without_writing(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["save", str(source), "--dry-run"])

    assert result.exit_code == 0, result.stderr
    assert result.stdout.startswith("% Encoding: UTF-8\n")
    assert result.stdout.index("@Collection{collection-2020,") < result.stdout.index(
        "@InCollection{smith-chapter,"
    )
    assert source.read_text(encoding="utf-8") == SOURCE
    assert sorted(path.name for path in tmp_path.iterdir()) == ["refs.bib"]


def test_save_rewrites_file_and_keeps_backup(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["-v", "save", str(source)])

    assert result.exit_code == 0, result.stderr
    written = source.read_text(encoding="utf-8")
    assert written.startswith("% Encoding: UTF-8\n")
    assert "@Misc{zeta-note," in written
    assert (tmp_path / "refs.bib.bak").read_text(encoding="utf-8") == SOURCE
    assert "Saved database to" in result.stdout


def test_save_to_output_plain_without_backup(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    target = tmp_path / "out" / "plain.bib"
    runner = CliRunner()

    result = runner.invoke(
        app, ["save", str(source), "-o", str(target), "--plain", "--no-backup"]
    )

    assert result.exit_code == 0, result.stderr
    written = target.read_text(encoding="utf-8")
    assert "% Encoding" not in written
    assert "@comment" not in written
    assert source.read_text(encoding="utf-8") == SOURCE


def test_sort_option_is_stored_in_metadata(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["save", str(source), "--sort", "year:desc", "--no-backup"])

    assert result.exit_code == 0, result.stderr
    written = source.read_text(encoding="utf-8")
    assert "@comment{jabref-meta: saveOrderConfig:specified;year;true;}" in written
    # The crossref target still precedes the entry that refers to it.
    positions = [
        written.index(marker)
        for marker in ("{zeta-note,", "{collection-2020,", "{smith-chapter,")
    ]
    assert positions == sorted(positions)


def test_invalid_sort_option_is_rejected(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["save", str(source), "--sort", "year:upwards"])

    assert result.exit_code != 0
    assert source.read_text(encoding="utf-8") == SOURCE


def test_format_error_leaves_file_untouched(tmp_path: Path) -> None:
    content = "@misc{broken,\n  title = {Issue #5}\n}\n"
    source = _write_source(tmp_path, content)
    runner = CliRunner()

    result = runner.invoke(app, ["save", str(source)])

    assert result.exit_code == 1
    assert "broken" in result.stderr
    assert source.read_text(encoding="utf-8") == content
    assert not (tmp_path / "refs.bib.bak").exists()


def test_config_file_provides_defaults(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    config = tmp_path / "bibsmith.toml"
    config.write_text('[save]\nsave_type = "plain_bibtex"\n', encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["save", str(source), "--config", str(config), "--dry-run"])

    assert result.exit_code == 0, result.stderr
    assert "% Encoding" not in result.stdout


def test_invalid_config_exits_with_error(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    config = tmp_path / "bibsmith.toml"
    config.write_text('[save]\nencoding = "no-such-codec"\n', encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["save", str(source), "--config", str(config)])

    assert result.exit_code == 1
    assert "Invalid save preferences" in result.stderr


def test_order_lists_entries_in_save_order(tmp_path: Path) -> None:
    source = _write_source(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["order", str(source)])

    assert result.exit_code == 0, result.stderr
    assert "Save Order" in result.stdout
    assert result.stdout.index("collection-2020") < result.stdout.index("smith-chapter")


def test_version_flag(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("bibsmith ")


JABREF_SOURCE = textwrap.dedent(
    r"""
    @string{aFirst = "Ann"}
    @string{aFull = aFirst # " Smith"}

    @dataset{data-2022,
      author = aFull,
      title = {Measurements},
      year = {2022}
    }

    @article{doe2020,
      author = {Doe, Jane},
      title = {Paper},
      journal = {J},
      year = {2020}
    }

    @comment{jabref-meta: fileDirectory:/pdfs;}

    @comment{jabref-meta: groupstree:
    0 AllEntriesGroup:;
    1 ExplicitGroup:Reading\;0\;doe2020\;;
    }

    @comment{jabref-entrytype: Dataset: req[author;title] opt[url]}

    % end of file
    """
)


def test_saving_twice_is_stable(tmp_path: Path) -> None:
    source = _write_source(tmp_path, JABREF_SOURCE)
    runner = CliRunner()

    first = runner.invoke(app, ["save", str(source), "--sort", "year:desc", "--no-backup"])
    assert first.exit_code == 0, first.stderr
    once = source.read_bytes()

    second = runner.invoke(app, ["save", str(source), "--no-backup"])
    assert second.exit_code == 0, second.stderr
    twice = source.read_bytes()

    assert twice == once
    written = once.decode("utf-8")
    assert "@String { aFull  = aFirst # { Smith} }" in written
    assert "@comment{jabref-meta: fileDirectory:/pdfs;}" in written
    assert "1 ExplicitGroup:Reading\\;0\\;doe2020\\;;" in written
    assert "@comment{jabref-entrytype: Dataset: req[author;title] opt[url]}" in written
    assert written.endswith("% end of file\n")
    assert written.index("{data-2022,") < written.index("{doe2020,")
