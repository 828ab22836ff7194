"""Custom exception hierarchy for the BibTeX writing pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from bibsmith.core.model.entry import BibEntry


class BibsmithError(RuntimeError):
    """Base exception for bibsmith failures."""


class FormatError(BibsmithError):
    """Raised when a value cannot be safely rendered as BibTeX."""


class LoadError(BibsmithError):
    """Raised when a BibTeX source cannot be read or parsed."""


class KeyCollisionError(BibsmithError):
    """Raised when a string macro name is registered twice in a database."""


class ConfigurationError(BibsmithError):
    """Raised when save preferences cannot be loaded or validated."""


class SessionStateError(BibsmithError):
    """Raised when a save session is used after reaching a terminal state."""


class SaveError(BibsmithError):
    """Raised when a database could not be written.

    `entry` names the entry that was being processed when the failure
    occurred, when there was one.
    """

    def __init__(self, message: str, *, entry: BibEntry | None = None) -> None:
        super().__init__(message)
        self.entry = entry

    def __str__(self) -> str:
        message = super().__str__()
        if self.entry is None:
            return message
        label = self.entry.key or self.entry.id
        return f"{message} (while writing entry '{label}')"


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "BibsmithError",
    "ConfigurationError",
    "FormatError",
    "KeyCollisionError",
    "LoadError",
    "SaveError",
    "SessionStateError",
    "exception_hint",
    "exception_messages",
]
