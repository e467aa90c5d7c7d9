"""Runner that acts on the local machine.

Commands go through the configured shell as ``<shell> -c <command>``;
file operations use strict UTF-8 with no newline translation.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from serverwitch.domain.models import CommandResult, ReadResult, WriteResult
from serverwitch.runner.base import ActionExecutionError, ActionRunner

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/bash"
DEFAULT_SHELL_ARGS = ("-c",)


class LocalActionRunner(ActionRunner):
    """Runs commands and file operations on this host."""

    def __init__(
        self,
        shell: str = DEFAULT_SHELL,
        shell_args: Sequence[str] = DEFAULT_SHELL_ARGS,
    ) -> None:
        self._shell = shell
        self._shell_args = tuple(shell_args)

    async def run_command(self, command: str) -> CommandResult:
        try:
            process = await asyncio.create_subprocess_exec(
                self._shell,
                *self._shell_args,
                command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            raise ActionExecutionError(
                f"Error executing command: {e}", action="command"
            ) from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise

        # Negative return codes mean the process died from a signal
        returncode = process.returncode
        exit_code = returncode if returncode is not None and returncode >= 0 else None

        try:
            result = CommandResult(
                exit_code=exit_code,
                stdout=stdout.decode("utf-8"),
                stderr=stderr.decode("utf-8"),
            )
        except UnicodeDecodeError as e:
            raise ActionExecutionError(
                "Command output contains invalid characters", action="command"
            ) from e

        logger.debug("Command %r exited with %s", command, exit_code)
        return result

    async def read_file(self, path: str) -> ReadResult:
        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
            content = data.decode("utf-8")
        # UnicodeDecodeError is a ValueError, so it has to be caught first
        except UnicodeDecodeError as e:
            raise ActionExecutionError(
                f"File {path} contains invalid characters", action="read"
            ) from e
        except (OSError, ValueError) as e:
            raise ActionExecutionError(f"Error reading file: {e}", action="read") from e
        logger.debug("Read %d bytes from %s", len(data), path)
        return ReadResult(content=content)

    async def write_file(self, path: str, content: str) -> WriteResult:
        data = content.encode("utf-8")
        try:
            await asyncio.to_thread(Path(path).write_bytes, data)
        except (OSError, ValueError) as e:
            raise ActionExecutionError(f"Error writing file: {e}", action="write") from e
        logger.debug("Wrote %d bytes to %s", len(data), path)
        return WriteResult(bytes_written=len(data))
