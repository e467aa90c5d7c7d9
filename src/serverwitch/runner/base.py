"""Abstract base class for action runners.

A runner carries out one action against its environment and returns the
matching result. Failures are raised as :class:`ActionExecutionError`;
the session turns them into an error response. Nothing is retried.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from serverwitch.domain.models import (
    Action,
    ActionResult,
    CommandAction,
    CommandResult,
    ReadAction,
    ReadResult,
    WriteAction,
    WriteResult,
)

logger = logging.getLogger(__name__)


class ActionRunner(ABC):
    """Executes actions requested by the relay.

    Example usage::

        runner = LocalActionRunner()
        result = await runner.execute(CommandAction(command="echo hi"))
    """

    @abstractmethod
    async def run_command(self, command: str) -> CommandResult:
        """Run ``command`` through the shell interpreter with no stdin.

        Raises:
            ActionExecutionError: If the interpreter cannot be spawned or
                its output is not valid UTF-8.
        """
        ...

    @abstractmethod
    async def read_file(self, path: str) -> ReadResult:
        """Read the whole file at ``path`` as UTF-8 text.

        Raises:
            ActionExecutionError: If the file is missing, unreadable or
                not valid UTF-8.
        """
        ...

    @abstractmethod
    async def write_file(self, path: str, content: str) -> WriteResult:
        """Create or truncate ``path`` and write ``content`` as UTF-8.

        Raises:
            ActionExecutionError: On any I/O error.
        """
        ...

    async def execute(self, action: Action) -> ActionResult:
        """Dispatch ``action`` to the matching operation."""
        if isinstance(action, CommandAction):
            return await self.run_command(action.command)
        if isinstance(action, ReadAction):
            return await self.read_file(action.path)
        if isinstance(action, WriteAction):
            return await self.write_file(action.path, action.content)
        raise TypeError(f"Unknown action type: {type(action).__name__}")


class ActionExecutionError(Exception):
    """Raised when an action cannot be carried out."""

    def __init__(self, message: str, action: str = "") -> None:
        super().__init__(message)
        self.action = action


async def execute(action: Action, runner: ActionRunner | None = None) -> ActionResult:
    """Execute ``action`` with ``runner``, defaulting to the local host."""
    if runner is None:
        from serverwitch.runner.local import LocalActionRunner

        runner = LocalActionRunner()
    return await runner.execute(action)
