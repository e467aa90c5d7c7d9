"""Shared test fixtures for the serverwitch test suite.

Provides sample actions, an in-memory transport that replays scripted
frames, an in-memory terminal that records drawing calls, and a mock
action runner.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from rich.text import Text

from serverwitch.domain.channels import Mailbox
from serverwitch.domain.models import (
    CommandAction,
    CommandResult,
    ReadAction,
    ReadResult,
    WriteAction,
    WriteResult,
)
from serverwitch.runner.base import ActionRunner
from serverwitch.session.transport import Frame, Transport
from serverwitch.tui.geometry import TerminalSize
from serverwitch.tui.terminal import TerminalBackend


# ---------------------------------------------------------------------------
# Action Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def command_action() -> CommandAction:
    return CommandAction(command="echo hi")


@pytest.fixture
def read_action() -> ReadAction:
    return ReadAction(path="/etc/hostname")


@pytest.fixture
def write_action() -> WriteAction:
    return WriteAction(path="/tmp/out.txt", content="hello")


@pytest.fixture
def mock_runner() -> AsyncMock:
    """A runner whose operations succeed with canned results."""
    runner = AsyncMock(spec=ActionRunner)
    runner.execute.return_value = CommandResult(exit_code=0, stdout="hi\n", stderr="")
    runner.run_command.return_value = CommandResult(exit_code=0, stdout="hi\n", stderr="")
    runner.read_file.return_value = ReadResult(content="host\n")
    runner.write_file.return_value = WriteResult(bytes_written=5)
    return runner


@pytest.fixture
def mailbox() -> Mailbox:
    return Mailbox(maxsize=100)


# ---------------------------------------------------------------------------
# Transport Fixtures
# ---------------------------------------------------------------------------


class FakeTransport(Transport):
    """Transport that replays ``frames`` and records what is sent.

    Once the script is exhausted, ``recv`` returns None (peer closed) if
    ``close_after`` is true, otherwise it blocks until the transport is
    closed.
    """

    def __init__(self, frames: list[Frame] | None = None, close_after: bool = True) -> None:
        self.frames = list(frames or [])
        self.close_after = close_after
        self.sent: list[Frame] = []
        self.closed = False
        self.send_error: Exception | None = None
        self._closed_event = asyncio.Event()

    async def recv(self) -> Frame | None:
        if self.frames:
            return self.frames.pop(0)
        if not self.close_after:
            await self._closed_event.wait()
        return None

    async def send(self, frame: Frame) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()


@pytest.fixture
def fake_transport_factory():
    """Build a FakeTransport from a list of frames."""
    def _factory(frames: list[Frame] | None = None, close_after: bool = True) -> FakeTransport:
        return FakeTransport(frames, close_after=close_after)
    return _factory


# ---------------------------------------------------------------------------
# Terminal Fixtures
# ---------------------------------------------------------------------------


class FakeTerminal(TerminalBackend):
    """Terminal that keeps a screen buffer of plain-text lines.

    ``scroll_up`` moves the top line into ``scrollback``, the way a real
    terminal pushes it into its history.
    """

    def __init__(self, width: int = 80, height: int = 5, cursor: int = 0) -> None:
        self._size = TerminalSize(width=width, height=height)
        self._cursor_row = cursor
        self.screen: list[str] = [""] * height
        self.scrollback: list[str] = []
        self.cursor: tuple[int, int] = (0, cursor)
        self.cursor_visible = True
        self.raw = False
        self.watching = False
        self.on_keys = None
        self.on_resize = None

    def size(self) -> TerminalSize:
        return self._size

    def resize(self, width: int, height: int) -> None:
        self._size = TerminalSize(width=width, height=height)
        self.screen = (self.screen + [""] * height)[:height]

    def cursor_row(self) -> int:
        return self._cursor_row

    def write_line(self, y: int, line: Text) -> None:
        self.screen[y] = line.plain[: self._size.width]

    def clear_line(self, y: int) -> None:
        self.screen[y] = ""

    def scroll_up(self, lines: int = 1) -> None:
        for _ in range(lines):
            self.scrollback.append(self.screen.pop(0))
            self.screen.append("")

    def set_cursor(self, x: int, y: int) -> None:
        self.cursor = (x, y)

    def hide_cursor(self) -> None:
        self.cursor_visible = False

    def show_cursor(self) -> None:
        self.cursor_visible = True

    def enable_raw_mode(self) -> None:
        self.raw = True

    def disable_raw_mode(self) -> None:
        self.raw = False

    def watch(self, on_keys, on_resize) -> None:
        self.watching = True
        self.on_keys = on_keys
        self.on_resize = on_resize

    def unwatch(self) -> None:
        self.watching = False


@pytest.fixture
def terminal_factory():
    """Build a FakeTerminal of a given size and cursor position."""
    def _factory(width: int = 80, height: int = 5, cursor: int = 0) -> FakeTerminal:
        return FakeTerminal(width=width, height=height, cursor=cursor)
    return _factory


@pytest.fixture
def fake_terminal(terminal_factory) -> FakeTerminal:
    """A 80x5 terminal with the cursor on the top line."""
    return terminal_factory()
