import os
from pathlib import Path

import pytest

from bibsmith.core.exceptions import SessionStateError
from bibsmith.core.writer import SaveSession, SessionState, VerifyingWriter


def test_verifying_writer_collects_unencodable_characters() -> None:
    writer = VerifyingWriter("ascii")
    writer.write("Café ")
    writer.write("naïve")
    writer.close()

    assert writer.problem_characters == frozenset({"é", "ï"})
    assert not writer.could_encode_all()


def test_verifying_writer_rejects_writes_after_close() -> None:
    with VerifyingWriter("utf-8") as writer:
        writer.write("ok")
    assert writer.could_encode_all()
    with pytest.raises(ValueError):
        writer.write("late")


def test_commit_replaces_target_and_keeps_backup(tmp_path: Path) -> None:
    target = tmp_path / "refs.bib"
    target.write_text("old content\n", encoding="utf-8")

    session = SaveSession("UTF-8", make_backup=True)
    session.writer().write("new content\n")
    session.finish()
    temporary = session.temporary_path
    backup = session.commit(target)

    assert target.read_text(encoding="utf-8") == "new content\n"
    assert backup == tmp_path / "refs.bib.bak"
    assert backup.read_text(encoding="utf-8") == "old content\n"
    assert session.state is SessionState.COMMITTED
    assert not temporary.exists()
    assert sorted(path.name for path in tmp_path.iterdir()) == ["refs.bib", "refs.bib.bak"]


def test_commit_without_backup(tmp_path: Path) -> None:
    target = tmp_path / "refs.bib"
    target.write_text("old\n", encoding="utf-8")

    session = SaveSession(make_backup=False)
    session.writer().write("new\n")
    session.finish()

    assert session.commit(target) is None
    assert not (tmp_path / "refs.bib.bak").exists()


def test_cancel_discards_temporary_file_and_is_idempotent(tmp_path: Path) -> None:
    target = tmp_path / "refs.bib"
    target.write_text("untouched\n", encoding="utf-8")

    session = SaveSession()
    session.writer().write("discarded\n")
    session.finish()
    session.cancel()
    session.cancel()

    assert session.state is SessionState.CANCELLED
    assert not session.temporary_path.exists()
    assert target.read_text(encoding="utf-8") == "untouched\n"
    with pytest.raises(SessionStateError):
        session.commit(target)


def test_cancel_after_commit_is_rejected(tmp_path: Path) -> None:
    session = SaveSession(make_backup=False)
    session.finish()
    session.commit(tmp_path / "out.bib")

    with pytest.raises(SessionStateError):
        session.cancel()


def test_context_manager_cancels_open_session() -> None:
    with SaveSession() as session:
        session.writer().write("scratch")
    assert session.state is SessionState.CANCELLED
    assert not session.temporary_path.exists()


def test_unencodable_characters_are_replaced() -> None:
    session = SaveSession("ascii", make_backup=False)
    session.writer().write("Café\n")
    session.finish()

    assert session.encoding_problems == frozenset({"é"})
    assert session.read_text() == "Caf?\n"
    session.cancel()


def test_windows_line_endings(tmp_path: Path) -> None:
    target = tmp_path / "crlf.bib"
    session = SaveSession(make_backup=False, newline="\r\n")
    session.writer().write("one\ntwo\r\n")
    session.finish()
    session.commit(target)

    assert target.read_bytes() == b"one\r\ntwo\r\n"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_commit_keeps_destination_permissions(tmp_path: Path) -> None:
    target = tmp_path / "refs.bib"
    target.write_text("old\n", encoding="utf-8")
    target.chmod(0o640)

    session = SaveSession(make_backup=False)
    session.writer().write("new\n")
    session.finish()
    session.commit(target)

    assert target.stat().st_mode & 0o777 == 0o640


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_commit_creates_new_files_with_umask_permissions(tmp_path: Path) -> None:
    target = tmp_path / "fresh.bib"
    mask = os.umask(0o022)
    try:
        session = SaveSession(make_backup=False)
        session.writer().write("new\n")
        session.finish()
        session.commit(target)
    finally:
        os.umask(mask)

    assert target.stat().st_mode & 0o777 == 0o644
