"""Viewport arithmetic for the inline terminal view.

The view owns a rectangle of the terminal anchored where the cursor was
when it started. As rows are appended it first grows downwards, then
reclaims the lines above it by scrolling the screen, and once it spans
the whole terminal it evicts its oldest rows into the scrollback.

Everything here is pure so it can be tested without a terminal; the
view replays the returned steps against its backend.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class ViewportError(Exception):
    """Raised when the terminal cannot fit the view's reserved lines."""


class TerminalSize(BaseModel):
    """Terminal dimensions in character cells."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=0)
    height: int = Field(ge=0)


class Viewport(BaseModel):
    """The region of the terminal the view redraws.

    ``top`` is a screen line index, origin at the top of the terminal.
    """

    model_config = ConfigDict(frozen=True)

    top: int = Field(ge=0)
    height: int = Field(ge=0)
    width: int = Field(ge=0)

    @property
    def bottom(self) -> int:
        """First screen line below the viewport."""
        return self.top + self.height


class Step(str, enum.Enum):
    """One adjustment made while fitting rows into the viewport."""

    GROW = "grow"  # Extend one line downwards into free space
    RECLAIM = "reclaim"  # Scroll the screen up and move the top up one line
    EVICT = "evict"  # Push the oldest row into the scrollback


class Reconciliation(BaseModel):
    model_config = ConfigDict(frozen=True)

    viewport: Viewport
    steps: tuple[Step, ...] = ()

    @property
    def evicted(self) -> int:
        """Number of rows to remove from the front of the row list."""
        return sum(1 for step in self.steps if step is Step.EVICT)


def clamp_viewport(viewport: Viewport, size: TerminalSize) -> Viewport:
    """Fit ``viewport`` inside a terminal of ``size``."""
    top = min(viewport.top, max(size.height - 1, 0))
    height = min(viewport.height, size.height - top)
    return Viewport(top=top, height=height, width=size.width)


def reconcile(
    viewport: Viewport,
    size: TerminalSize,
    row_count: int,
    bottom_margin: int,
) -> Reconciliation:
    """Work out how to make ``row_count`` rows plus the margin fit.

    Growing is preferred over reclaiming, and reclaiming over evicting.

    Raises:
        ViewportError: If the terminal is shorter than ``bottom_margin``.
    """
    if size.height < bottom_margin:
        raise ViewportError(
            f"Terminal height {size.height} is smaller than the {bottom_margin} reserved lines"
        )

    steps: list[Step] = []
    while row_count > viewport.height - bottom_margin:
        if viewport.bottom < size.height:
            viewport = viewport.model_copy(update={"height": viewport.height + 1})
            steps.append(Step.GROW)
        elif viewport.top > 0:
            viewport = viewport.model_copy(
                update={"top": viewport.top - 1, "height": viewport.height + 1}
            )
            steps.append(Step.RECLAIM)
        else:
            row_count -= 1
            steps.append(Step.EVICT)
    return Reconciliation(viewport=viewport, steps=tuple(steps))
