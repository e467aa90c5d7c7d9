"""Row rendering for the terminal view.

Each action is drawn on a single line::

    <state> │ <type> <content>

where the state glyph is a spinner while the action runs.
"""

from __future__ import annotations

from rich.text import Text

from serverwitch.domain.models import (
    ActionState,
    CommandAction,
    ReadAction,
    StatefulAction,
    WriteAction,
)

SPINNER_SYMBOLS = ("⠇", "⠋", "⠙", "⠸", "⠴", "⠦")

CONFIRM_PROMPT = "Are you sure you want to do this? [y/n]"

SEPARATOR = " │ "

_STATE_GLYPHS: dict[ActionState, tuple[str, str]] = {
    ActionState.RUNNING: ("✔", "blue"),
    ActionState.FINISHED: ("✔", "green"),
    ActionState.PENDING: ("?", ""),
    ActionState.CANCELED: ("✖", "red"),
}


def type_glyph(item: StatefulAction) -> str:
    action = item.action
    if isinstance(action, CommandAction):
        return "> "
    if isinstance(action, ReadAction):
        return "¶ "
    if isinstance(action, WriteAction):
        return "🖉 "
    raise TypeError(f"Unknown action type: {type(action).__name__}")


def action_line(item: StatefulAction, spinner_index: int | None = None) -> Text:
    """Render ``item`` as one styled line.

    Args:
        item: The action and its state.
        spinner_index: Spinner frame for running actions. None draws a
            static glyph, which is what rows leaving the view get.
    """
    glyph, style = _STATE_GLYPHS[item.state]
    if item.state is ActionState.RUNNING and spinner_index is not None:
        glyph = SPINNER_SYMBOLS[spinner_index % len(SPINNER_SYMBOLS)]

    line = Text()
    line.append(glyph, style=style)
    line.append(SEPARATOR, style="bright_black")
    line.append(type_glyph(item), style="cyan on black")
    line.append(" ", style="white")
    # Rows are exactly one screen line
    content = " ".join(item.action.describe().splitlines())
    line.append(
        content,
        style="" if item.state is ActionState.PENDING else "white",
    )
    return line


def info_line(text: str) -> Text:
    return Text(text)


def confirmation_lines(item: StatefulAction) -> list[Text]:
    """The block shown under the rows while an action awaits a decision."""
    return [action_line(item), Text(CONFIRM_PROMPT)]
