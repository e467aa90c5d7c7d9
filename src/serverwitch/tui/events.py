"""Events consumed by the terminal view loop."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from serverwitch.domain.models import ActionMessage
from serverwitch.tui.geometry import TerminalSize


class Tick(BaseModel):
    """Periodic redraw, advances the spinner."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tick"] = "tick"


class Key(BaseModel):
    """A key press. Control combinations carry the lowercase letter."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["key"] = "key"
    char: str
    ctrl: bool = False


class Resize(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["resize"] = "resize"
    size: TerminalSize


class Message(BaseModel):
    """A lifecycle notification from the session."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["message"] = "message"
    message: ActionMessage


Event = Union[Tick, Key, Resize, Message]


def decode_keys(data: str) -> list[Key]:
    """Turn raw terminal input into key presses.

    Escape sequences (arrows, function keys) and line control characters
    are dropped.
    """
    keys: list[Key] = []
    i = 0
    while i < len(data):
        ch = data[i]
        if ch == "\x1b":
            i += 1
            if i < len(data) and data[i] in "[O":
                i += 1
                while i < len(data) and not (data[i].isalpha() or data[i] == "~"):
                    i += 1
                i += 1
            continue
        code = ord(ch)
        if 1 <= code <= 26:
            if ch not in "\t\n\r":
                keys.append(Key(char=chr(code + 96), ctrl=True))
        elif ch.isprintable():
            keys.append(Key(char=ch))
        i += 1
    return keys
