"""Save sessions: buffered, verified output promoted atomically on commit.

A `SaveSession` owns one temporary file from construction until it is
committed or cancelled. Content is first written to a `VerifyingWriter`,
which buffers text in memory and checks on close that every character can
be represented in the target encoding. Only `commit` touches the
destination, and it does so with `os.replace` so readers see either the
previous file or the complete new one.
"""

from __future__ import annotations

import codecs
from enum import Enum
import io
import logging
import os
from pathlib import Path
import shutil
import tempfile
from types import TracebackType
from typing import Protocol

from bibsmith.core.exceptions import SessionStateError


logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


class TextSink(Protocol):
    """Anything text can be written to."""

    def write(self, text: str) -> None: ...


class SessionState(Enum):
    OPEN = "open"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class VerifyingWriter:
    """Text sink that records characters the target encoding cannot represent."""

    def __init__(self, encoding: str) -> None:
        self.encoding = encoding
        self._encoder = codecs.getincrementalencoder(encoding)()
        self._buffer = io.StringIO()
        self._problems: set[str] = set()
        self.closed = False

    def write(self, text: str) -> None:
        if self.closed:
            raise ValueError("write to a closed VerifyingWriter")
        self._buffer.write(text)

    def getvalue(self) -> str:
        return self._buffer.getvalue()

    def verify(self) -> None:
        """Scan the buffered content and collect unencodable characters."""
        content = self._buffer.getvalue()
        try:
            content.encode(self.encoding)
        except UnicodeEncodeError:
            for char in set(content):
                try:
                    self._encoder.encode(char)
                except UnicodeEncodeError:
                    self._problems.add(char)
                self._encoder.reset()

    @property
    def problem_characters(self) -> frozenset[str]:
        return frozenset(self._problems)

    def could_encode_all(self) -> bool:
        return not self._problems

    def close(self) -> None:
        if not self.closed:
            self.verify()
            self.closed = True

    def __enter__(self) -> VerifyingWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class SaveSession:
    """Scoped output target for one save."""

    def __init__(
        self,
        encoding: str = "UTF-8",
        make_backup: bool = True,
        *,
        newline: str = "\n",
    ) -> None:
        self.encoding = encoding
        self.make_backup = make_backup
        self.newline = newline
        fd, name = tempfile.mkstemp(prefix="bibsmith-", suffix=".bib")
        os.close(fd)
        self.temporary_path = Path(name)
        self.state = SessionState.OPEN
        self._writer: VerifyingWriter | None = None

    def writer(self) -> VerifyingWriter:
        """Return the session writer; call `finish` once writing is done."""
        self._ensure_open()
        if self._writer is None:
            self._writer = VerifyingWriter(self.encoding)
        return self._writer

    def finish(self) -> None:
        """Close the writer and flush its content to the temporary file."""
        self._ensure_open()
        writer = self.writer()
        writer.close()
        content = writer.getvalue().replace("\r\n", "\n")
        with open(
            self.temporary_path,
            "w",
            encoding=self.encoding,
            errors="replace",
            newline=self.newline,
        ) as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())

    @property
    def encoding_problems(self) -> frozenset[str]:
        if self._writer is None:
            return frozenset()
        return self._writer.problem_characters

    def read_text(self) -> str:
        """Return what would be committed, decoded with the session encoding."""
        if self.state is not SessionState.OPEN:
            raise SessionStateError(f"Cannot inspect a {self.state.value} session.")
        return self.temporary_path.read_bytes().decode(self.encoding)

    def commit(self, target: Path | str) -> Path | None:
        """Replace `target` with the session content.

        Returns the backup path when a backup was made.
        """
        self._ensure_open()
        destination = Path(target)
        destination.parent.mkdir(parents=True, exist_ok=True)
        backup: Path | None = None
        if self.make_backup and destination.exists():
            backup = destination.with_name(destination.name + BACKUP_SUFFIX)
            shutil.copy2(destination, backup)

        fd, staging_name = tempfile.mkstemp(prefix=destination.name, dir=destination.parent)
        os.close(fd)
        staging = Path(staging_name)
        try:
            shutil.copyfile(self.temporary_path, staging)
            _match_permissions(staging, destination)
            os.replace(staging, destination)
        finally:
            if staging.exists():
                staging.unlink()

        self._discard_temporary()
        self.state = SessionState.COMMITTED
        logger.debug("Committed save session to %s", destination)
        return backup

    def cancel(self) -> None:
        """Discard the temporary file; the destination is never touched."""
        if self.state is SessionState.CANCELLED:
            return
        if self.state is SessionState.COMMITTED:
            raise SessionStateError("Cannot cancel a committed session.")
        self._discard_temporary()
        self.state = SessionState.CANCELLED

    def _discard_temporary(self) -> None:
        try:
            self.temporary_path.unlink(missing_ok=True)
        except OSError:
            logger.debug("Could not remove temp file %s", self.temporary_path, exc_info=True)

    def _ensure_open(self) -> None:
        if self.state is not SessionState.OPEN:
            raise SessionStateError(f"Save session is already {self.state.value}.")

    def __enter__(self) -> SaveSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.state is SessionState.OPEN:
            self.cancel()


def _match_permissions(staging: Path, destination: Path) -> None:
    """Give `staging` the mode of `destination`, or the umask default for new files."""
    if destination.exists():
        shutil.copymode(destination, staging)
        return
    mask = os.umask(0)
    os.umask(mask)
    staging.chmod(0o666 & ~mask)


__all__ = ["BACKUP_SUFFIX", "SaveSession", "SessionState", "TextSink", "VerifyingWriter"]
