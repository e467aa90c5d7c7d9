"""Tests for row rendering and key decoding."""

from __future__ import annotations

from serverwitch.domain.models import (
    ActionState,
    CommandAction,
    ReadAction,
    StatefulAction,
    WriteAction,
)
from serverwitch.tui.events import Key, decode_keys
from serverwitch.tui.render import (
    CONFIRM_PROMPT,
    SPINNER_SYMBOLS,
    action_line,
    confirmation_lines,
    info_line,
)


def item(action, state: ActionState = ActionState.RUNNING) -> StatefulAction:
    return StatefulAction(action=action, state=state)


class TestActionLine:
    def test_command_row(self) -> None:
        line = action_line(item(CommandAction(command="ls -la"), ActionState.FINISHED))
        assert line.plain == "✔ │ >  ls -la"

    def test_read_row(self) -> None:
        line = action_line(item(ReadAction(path="/etc/hosts"), ActionState.FINISHED))
        assert line.plain == "✔ │ ¶  /etc/hosts"

    def test_write_row(self) -> None:
        line = action_line(item(WriteAction(path="a.txt", content="hi"), ActionState.FINISHED))
        assert line.plain == "✔ │ 🖉  a.txt hi"

    def test_pending_and_canceled_glyphs(self) -> None:
        action = CommandAction(command="ls")
        assert action_line(item(action, ActionState.PENDING)).plain.startswith("?")
        assert action_line(item(action, ActionState.CANCELED)).plain.startswith("✖")

    def test_running_spinner(self) -> None:
        running = item(CommandAction(command="sleep 1"))
        assert action_line(running, 0).plain.startswith(SPINNER_SYMBOLS[0])
        assert action_line(running, 2).plain.startswith(SPINNER_SYMBOLS[2])
        assert action_line(running, len(SPINNER_SYMBOLS)).plain.startswith(SPINNER_SYMBOLS[0])

    def test_running_without_spinner_is_static(self) -> None:
        assert action_line(item(CommandAction(command="ls"))).plain.startswith("✔")

    def test_spinner_only_for_running(self) -> None:
        finished = item(CommandAction(command="ls"), ActionState.FINISHED)
        assert action_line(finished, 3).plain.startswith("✔")

    def test_multiline_content_is_one_line(self) -> None:
        line = action_line(item(WriteAction(path="f", content="a\nb\nc")))
        assert "\n" not in line.plain
        assert line.plain.endswith("f a b c")

    def test_state_colors(self) -> None:
        finished = action_line(item(CommandAction(command="ls"), ActionState.FINISHED))
        canceled = action_line(item(CommandAction(command="ls"), ActionState.CANCELED))
        assert str(finished.spans[0].style) == "green"
        assert str(canceled.spans[0].style) == "red"


class TestConfirmation:
    def test_block(self) -> None:
        lines = confirmation_lines(item(CommandAction(command="rm x"), ActionState.PENDING))
        assert len(lines) == 2
        assert lines[0].plain == "? │ >  rm x"
        assert lines[1].plain == CONFIRM_PROMPT

    def test_info_line(self) -> None:
        assert info_line("Session id: abc").plain == "Session id: abc"


class TestDecodeKeys:
    def test_printable(self) -> None:
        assert decode_keys("yq") == [Key(char="y"), Key(char="q")]

    def test_ctrl_c(self) -> None:
        assert decode_keys("\x03") == [Key(char="c", ctrl=True)]

    def test_escape_sequences_dropped(self) -> None:
        assert decode_keys("\x1b[A\x1b[15~n\x1bOP") == [Key(char="n")]

    def test_line_control_dropped(self) -> None:
        assert decode_keys("\r\n\ty") == [Key(char="y")]

    def test_lone_escape(self) -> None:
        assert decode_keys("\x1b") == []
