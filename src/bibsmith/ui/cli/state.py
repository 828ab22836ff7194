"""Process-wide CLI settings and message rendering.

The root callback stores `--verbose` and `--debug` here; commands and the
CLI emitter read them back when printing to the rich consoles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import sys

from rich.console import Console
from rich.text import Text

from bibsmith.core.exceptions import exception_messages


_LEVEL_STYLES = {"error": "red", "warning": "yellow", "info": "cyan"}


@dataclass(slots=True)
class CLIState:
    verbosity: int = 0
    show_tracebacks: bool = False
    _stdout: Console | None = field(default=None, init=False, repr=False)
    _stderr: Console | None = field(default=None, init=False, repr=False)

    @property
    def console(self) -> Console:
        # Rebound when the test runner swaps sys.stdout.
        if self._stdout is None or self._stdout.file is not sys.stdout:
            self._stdout = Console(file=sys.stdout)
        return self._stdout

    @property
    def err_console(self) -> Console:
        if self._stderr is None or self._stderr.file is not sys.stderr:
            self._stderr = Console(file=sys.stderr, highlight=False)
        return self._stderr


_state = CLIState()


def get_cli_state() -> CLIState:
    return _state


def set_cli_state(*, verbosity: int | None = None, debug: bool | None = None) -> CLIState:
    """Apply the global `--verbose` and `--debug` flags."""
    if verbosity is not None:
        _state.verbosity = max(verbosity, 0)
    if debug is not None:
        _state.show_tracebacks = debug
    return _state


def _detail_lines(message: str, exc: BaseException, verbosity: int) -> list[str]:
    """Extra lines shown under a message: the exception at `-v`, its causes at `-vv`."""
    if verbosity < 1:
        return []
    lines: list[str] = []
    text = str(exc).strip()
    if text and text not in message:
        lines.append(text)
    lines.append(f"type: {type(exc).__name__}")
    if verbosity >= 2:
        lines.extend(f"caused by: {cause}" for cause in exception_messages(exc)[1:])
    return lines


def render_message(level: str, message: str, *, exception: BaseException | None = None) -> None:
    """Print `level: message`; info goes to stdout, everything else to stderr."""
    state = get_cli_state()
    style = _LEVEL_STYLES.get(level, "cyan")
    text = Text()
    text.append(f"{level}: ", style=f"bold {style}")
    text.append(message, style=style)
    if exception is not None:
        for line in _detail_lines(message, exception, state.verbosity):
            text.append(f"\n{line}", style=style)
    console = state.console if level == "info" else state.err_console
    console.print(text)


def emit_warning(message: str, *, exception: BaseException | None = None) -> None:
    render_message("warning", message, exception=exception)


def emit_error(message: str, *, exception: BaseException | None = None) -> None:
    render_message("error", message, exception=exception)


def debug_enabled() -> bool:
    return _state.show_tracebacks


__all__ = [
    "CLIState",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]
