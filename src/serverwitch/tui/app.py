"""Live terminal view of the actions requested during a session.

The view draws inline, below whatever the shell printed before it
started. Rows are appended as the session announces actions; once the
view fills the terminal its oldest rows scroll into the terminal's
history and stop being updated.

Keys:
    y / n       -- confirm or refuse the action awaiting a decision
    q / Ctrl-C  -- quit
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from rich.text import Text

from serverwitch.domain.channels import Acknowledgement, ChannelError, Mailbox
from serverwitch.domain.models import (
    ActionMessage,
    ActionState,
    AddAction,
    ConfirmAction,
    NewSession,
    StatefulAction,
    StopAction,
)
from serverwitch.tui.events import Event, Key, Message, Resize, Tick
from serverwitch.tui.geometry import (
    Step,
    TerminalSize,
    Viewport,
    ViewportError,
    clamp_viewport,
    reconcile,
)
from serverwitch.tui.render import SPINNER_SYMBOLS, action_line, confirmation_lines, info_line
from serverwitch.tui.terminal import AnsiTerminal, TerminalBackend

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0

# Lines taken by the confirmation block (action line + prompt)
CONFIRM_MARGIN = 2


class ActionRow(BaseModel):
    action_id: UUID
    item: StatefulAction


class InfoRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str


Row = Union[ActionRow, InfoRow]


class PendingConfirmation(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    action_id: UUID
    item: StatefulAction
    ack: Acknowledgement


class App:
    """State of the view and the drawing logic on top of a backend."""

    def __init__(self, terminal: TerminalBackend) -> None:
        self._terminal = terminal
        self._size = terminal.size()
        self.viewport = Viewport(
            top=min(terminal.cursor_row(), max(self._size.height - 1, 0)),
            height=0,
            width=self._size.width,
        )
        self.rows: deque[Row] = deque()
        self.pending: deque[PendingConfirmation] = deque()
        self.should_quit = False
        self.spinner_index = 0
        self.evicted = 0
        self._drawn_lines = 0

    @property
    def size(self) -> TerminalSize:
        return self._size

    @property
    def bottom_margin(self) -> int:
        return CONFIRM_MARGIN if self.pending else 0

    # -- State updates ------------------------------------------------------

    def update(self, event: Event) -> None:
        """Apply ``event`` and fit the rows into the terminal.

        Raises:
            ViewportError: If the terminal is too small to draw the view.
        """
        if isinstance(event, Key):
            self._on_key(event)
        elif isinstance(event, Tick):
            self.spinner_index = (self.spinner_index + 1) % len(SPINNER_SYMBOLS)
        elif isinstance(event, Resize):
            self._size = event.size
            self.viewport = clamp_viewport(self.viewport, event.size)
        elif isinstance(event, Message):
            self._on_message(event.message)
        self.reconcile()

    def _on_key(self, key: Key) -> None:
        if key.char == "q" and not key.ctrl:
            self.should_quit = True
        elif key.char == "c" and key.ctrl:
            self.should_quit = True
        elif key.char in ("y", "n") and not key.ctrl:
            self._resolve(key.char == "y")

    def _resolve(self, confirmed: bool) -> None:
        if not self.pending:
            return
        pending = self.pending.popleft()
        pending.item.transition(ActionState.RUNNING if confirmed else ActionState.CANCELED)
        self.rows.append(ActionRow(action_id=pending.action_id, item=pending.item))
        try:
            pending.ack.send(confirmed)
        except ChannelError as e:
            logger.error("Error sending confirmation: %s", e)

    def _on_message(self, message: ActionMessage) -> None:
        if isinstance(message, ConfirmAction):
            self.pending.append(
                PendingConfirmation(
                    action_id=message.action_id,
                    item=StatefulAction(action=message.action, state=ActionState.PENDING),
                    ack=message.ack,
                )
            )
        elif isinstance(message, AddAction):
            self.rows.append(
                ActionRow(
                    action_id=message.action_id,
                    item=StatefulAction(action=message.action, state=ActionState.RUNNING),
                )
            )
        elif isinstance(message, StopAction):
            self._finish(message.action_id)
        elif isinstance(message, NewSession):
            self.rows.append(InfoRow(text=f"Session id: {message.session_id}"))

    def _finish(self, action_id: UUID) -> None:
        for row in self.rows:
            if isinstance(row, ActionRow) and row.action_id == action_id:
                if row.item.state is ActionState.RUNNING:
                    row.item.transition(ActionState.FINISHED)
                return
        # Already scrolled into the terminal history
        logger.debug("Action %s is no longer visible", action_id)

    # -- Geometry -------------------------------------------------------------

    def reconcile(self) -> None:
        """Grow, scroll or evict until every row fits above the margin."""
        margin = self.bottom_margin
        plan = reconcile(self.viewport, self._size, len(self.rows), margin)
        for step in plan.steps:
            if step is Step.RECLAIM:
                for y in range(max(self._size.height - margin, 0), self._size.height):
                    self._terminal.clear_line(y)
                self._terminal.scroll_up(1)
            elif step is Step.EVICT:
                row = self.rows.popleft()
                self._terminal.write_line(0, self._render_row(row, final=True))
                self._terminal.scroll_up(1)
                self.evicted += 1
        self.viewport = plan.viewport

    # -- Drawing --------------------------------------------------------------

    def _render_row(self, row: Row, final: bool = False) -> Text:
        if isinstance(row, InfoRow):
            return info_line(row.text)
        spinner = None if final or self.should_quit else self.spinner_index
        return action_line(row.item, spinner)

    def lines(self) -> list[Text]:
        """Everything the viewport shows, top to bottom."""
        lines = [self._render_row(row) for row in self.rows]
        if self.pending:
            lines.extend(confirmation_lines(self.pending[0].item))
        return lines

    def draw(self) -> None:
        lines = self.lines()
        top = self.viewport.top
        for i in range(self.viewport.height):
            if i < len(lines):
                self._terminal.write_line(top + i, lines[i])
            else:
                self._terminal.clear_line(top + i)
        self._drawn_lines = min(len(lines), self.viewport.height)
        self._terminal.set_cursor(0, top + self._drawn_lines)
        self._terminal.hide_cursor()
        self._terminal.flush()

    def finish(self) -> None:
        """Leave the cursor on a fresh line below the view."""
        y = self.viewport.top + self._drawn_lines
        if y >= self._size.height:
            self._terminal.scroll_up(1)
            y = max(self._size.height - 1, 0)
        self._terminal.set_cursor(0, y)
        self._terminal.show_cursor()
        self._terminal.flush()

    def close(self) -> None:
        """Close every outstanding confirmation; the session reads it as a refusal."""
        while self.pending:
            self.pending.popleft().ack.close()


# ---------------------------------------------------------------------------
# Event loop
# ---------------------------------------------------------------------------


async def _pump_messages(mailbox: Mailbox[ActionMessage], events: asyncio.Queue[Event]) -> None:
    async for message in mailbox:
        events.put_nowait(Message(message=message))
    logger.info("Mailbox closed, no more actions will be shown")


async def _tick(events: asyncio.Queue[Event], interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        events.put_nowait(Tick())


def _close_unanswered(messages: list[ActionMessage]) -> None:
    for message in messages:
        if isinstance(message, ConfirmAction):
            message.ack.close()


async def run(
    mailbox: Mailbox[ActionMessage],
    terminal: TerminalBackend | None = None,
    tick_interval: float = TICK_INTERVAL,
) -> None:
    """Run the view until the operator quits or the terminal gets too small.

    Key presses, ticks, resizes and mailbox messages are merged into one
    queue and handled in arrival order, one draw per event. On exit the
    mailbox is closed and every confirmation still waiting is closed, so
    the session treats those actions as refused.
    """
    terminal = terminal if terminal is not None else AnsiTerminal()
    events: asyncio.Queue[Event] = asyncio.Queue()
    app: App | None = None

    def on_keys(keys: list[Key]) -> None:
        for key in keys:
            events.put_nowait(key)

    def on_resize(size: TerminalSize) -> None:
        events.put_nowait(Resize(size=size))

    terminal.enable_raw_mode()
    try:
        app = App(terminal)
        app.draw()
        terminal.watch(on_keys=on_keys, on_resize=on_resize)
        producers = [
            asyncio.create_task(_pump_messages(mailbox, events), name="view-messages"),
            asyncio.create_task(_tick(events, tick_interval), name="view-ticks"),
        ]
        try:
            while not app.should_quit:
                event = await events.get()
                app.update(event)
                app.draw()
        except ViewportError as e:
            logger.error("Error drawing the view: %s", e)
        finally:
            terminal.unwatch()
            for task in producers:
                task.cancel()
            await asyncio.gather(*producers, return_exceptions=True)
    finally:
        mailbox.close()
        _close_unanswered(mailbox.drain())
        while not events.empty():
            event = events.get_nowait()
            if isinstance(event, Message):
                _close_unanswered([event.message])
        if app is not None:
            app.close()
            app.finish()
        terminal.disable_raw_mode()
    logger.info("View closed")
