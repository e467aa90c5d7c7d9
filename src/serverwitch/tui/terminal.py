"""Terminal drawing backends for the view.

All drawing goes through :class:`TerminalBackend`, so the view can be
driven against an in-memory terminal in tests. :class:`AnsiTerminal`
draws on a real tty with ANSI control sequences and styles lines with
``rich``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import select
import shutil
import signal
import sys
import termios
import tty
from abc import ABC, abstractmethod
from typing import Callable, TextIO

from rich.console import Console
from rich.text import Text

from serverwitch.tui.events import Key, decode_keys
from serverwitch.tui.geometry import TerminalSize

logger = logging.getLogger(__name__)

CURSOR_POSITION_TIMEOUT = 1.0

_CURSOR_POSITION_RE = re.compile(r"\x1b\[(\d+);(\d+)R")


class TerminalBackend(ABC):
    """Low-level drawing primitives.

    Lines are addressed by absolute screen index, 0 being the top line
    of the terminal.
    """

    @abstractmethod
    def size(self) -> TerminalSize:
        ...

    @abstractmethod
    def cursor_row(self) -> int:
        """Screen line the cursor is on."""
        ...

    @abstractmethod
    def write_line(self, y: int, line: Text) -> None:
        """Replace screen line ``y`` with ``line``, cropped to the width."""
        ...

    @abstractmethod
    def clear_line(self, y: int) -> None:
        ...

    @abstractmethod
    def scroll_up(self, lines: int = 1) -> None:
        """Scroll the whole screen up, pushing top lines into the scrollback."""
        ...

    @abstractmethod
    def set_cursor(self, x: int, y: int) -> None:
        ...

    @abstractmethod
    def hide_cursor(self) -> None:
        ...

    @abstractmethod
    def show_cursor(self) -> None:
        ...

    def flush(self) -> None:
        """Push buffered output to the screen."""

    def enable_raw_mode(self) -> None:
        """Deliver key presses immediately and without echo."""

    def disable_raw_mode(self) -> None:
        ...

    def watch(
        self,
        on_keys: Callable[[list[Key]], None],
        on_resize: Callable[[TerminalSize], None],
    ) -> None:
        """Start reporting key presses and resizes to the callbacks."""

    def unwatch(self) -> None:
        ...


class AnsiTerminal(TerminalBackend):
    """Backend for a real tty using ANSI escape sequences.

    Key presses are read from ``input_fd`` on the running event loop and
    resizes are picked up from SIGWINCH.
    """

    def __init__(self, stream: TextIO | None = None, input_fd: int | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._input_fd = input_fd if input_fd is not None else sys.stdin.fileno()
        self._console = Console(
            file=self._stream, force_terminal=True, highlight=False, emoji=False
        )
        self._saved_attrs: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._early_keys: list[Key] = []

    def size(self) -> TerminalSize:
        try:
            columns, lines = os.get_terminal_size(self._stream.fileno())
        except (OSError, ValueError):
            columns, lines = shutil.get_terminal_size()
        return TerminalSize(width=columns, height=lines)

    def cursor_row(self) -> int:
        """Ask the terminal for the cursor position (DSR).

        Falls back to the last line if the terminal does not answer. Keys
        typed while waiting for the reply are kept and delivered once
        :meth:`watch` is called.
        """
        self._write("\x1b[6n")
        self.flush()
        response = ""
        while True:
            ready, _, _ = select.select([self._input_fd], [], [], CURSOR_POSITION_TIMEOUT)
            if not ready:
                break
            chunk = os.read(self._input_fd, 32)
            if not chunk:
                break
            response += chunk.decode("utf-8", errors="ignore")
            match = _CURSOR_POSITION_RE.search(response)
            if match:
                self._early_keys.extend(
                    decode_keys(response[: match.start()] + response[match.end():])
                )
                return int(match.group(1)) - 1
        self._early_keys.extend(decode_keys(response))
        logger.warning("Terminal did not report the cursor position")
        return max(self.size().height - 1, 0)

    def write_line(self, y: int, line: Text) -> None:
        self._move_to(0, y)
        self._write("\x1b[2K")
        cropped = line.copy()
        cropped.truncate(self.size().width)
        self._console.print(cropped, end="", soft_wrap=True)

    def clear_line(self, y: int) -> None:
        self._move_to(0, y)
        self._write("\x1b[2K")

    def scroll_up(self, lines: int = 1) -> None:
        # A line feed on the last line pushes the top line into the scrollback
        self._move_to(0, self.size().height - 1)
        self._write("\n" * lines)

    def set_cursor(self, x: int, y: int) -> None:
        self._move_to(x, y)

    def hide_cursor(self) -> None:
        self._write("\x1b[?25l")

    def show_cursor(self) -> None:
        self._write("\x1b[?25h")

    def flush(self) -> None:
        self._stream.flush()

    def enable_raw_mode(self) -> None:
        if self._saved_attrs is not None:
            return
        self._saved_attrs = termios.tcgetattr(self._input_fd)
        tty.setraw(self._input_fd)
        logger.debug("Raw mode enabled")

    def disable_raw_mode(self) -> None:
        if self._saved_attrs is None:
            return
        termios.tcsetattr(self._input_fd, termios.TCSADRAIN, self._saved_attrs)
        self._saved_attrs = None
        logger.debug("Raw mode disabled")

    def watch(
        self,
        on_keys: Callable[[list[Key]], None],
        on_resize: Callable[[TerminalSize], None],
    ) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop

        def _read_input() -> None:
            try:
                data = os.read(self._input_fd, 1024)
            except OSError as e:
                logger.error("Error reading terminal input: %s", e)
                return
            keys = decode_keys(data.decode("utf-8", errors="ignore"))
            if keys:
                on_keys(keys)

        loop.add_reader(self._input_fd, _read_input)
        loop.add_signal_handler(signal.SIGWINCH, lambda: on_resize(self.size()))
        if self._early_keys:
            keys, self._early_keys = self._early_keys, []
            loop.call_soon(on_keys, keys)

    def unwatch(self) -> None:
        if self._loop is None:
            return
        self._loop.remove_reader(self._input_fd)
        self._loop.remove_signal_handler(signal.SIGWINCH)
        self._loop = None

    def _move_to(self, x: int, y: int) -> None:
        self._write(f"\x1b[{y + 1};{x + 1}H")

    def _write(self, data: str) -> None:
        self._stream.write(data)
