"""Tests for the local action runner (real subprocesses and temp files)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from serverwitch.domain.models import (
    CommandAction,
    CommandResult,
    ReadAction,
    ReadResult,
    WriteAction,
    WriteResult,
)
from serverwitch.runner.base import ActionExecutionError, execute
from serverwitch.runner.local import LocalActionRunner


@pytest.fixture
def runner() -> LocalActionRunner:
    return LocalActionRunner()


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_echo(self, runner: LocalActionRunner) -> None:
        result = await runner.run_command("echo hi")
        assert result == CommandResult(exit_code=0, stdout="hi\n", stderr="")

    @pytest.mark.asyncio
    async def test_nonzero_exit_and_stderr(self, runner: LocalActionRunner) -> None:
        result = await runner.run_command("echo oops >&2; exit 3")
        assert result.exit_code == 3
        assert result.stdout == ""
        assert result.stderr == "oops\n"

    @pytest.mark.asyncio
    async def test_stdin_is_empty(self, runner: LocalActionRunner) -> None:
        result = await runner.run_command("cat")
        assert result.exit_code == 0
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_killed_by_signal_has_no_exit_code(self, runner: LocalActionRunner) -> None:
        result = await runner.run_command("kill -9 $$")
        assert result.exit_code is None

    @pytest.mark.asyncio
    async def test_invalid_utf8_output(self, runner: LocalActionRunner) -> None:
        with pytest.raises(ActionExecutionError, match="invalid characters"):
            await runner.run_command("printf '\\xff\\xfe'")

    @pytest.mark.asyncio
    async def test_missing_shell(self) -> None:
        runner = LocalActionRunner(shell="/nonexistent/shell")
        with pytest.raises(ActionExecutionError, match="Error executing command"):
            await runner.run_command("echo hi")

    @pytest.mark.asyncio
    async def test_custom_shell(self) -> None:
        runner = LocalActionRunner(shell="/bin/sh", shell_args=["-c"])
        result = await runner.run_command("echo $((1 + 2))")
        assert result.stdout == "3\n"


class TestFiles:
    @pytest.mark.asyncio
    async def test_write_then_read(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        path = str(tmp_path / "note.txt")
        content = "héllo\r\nwörld"
        written = await runner.write_file(path, content)
        assert written == WriteResult(bytes_written=len(content.encode("utf-8")))
        assert await runner.read_file(path) == ReadResult(content=content)

    @pytest.mark.asyncio
    async def test_write_truncates(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        path = tmp_path / "note.txt"
        path.write_text("a much longer previous content")
        await runner.write_file(str(path), "short")
        assert path.read_bytes() == b"short"

    @pytest.mark.asyncio
    async def test_write_empty(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        result = await runner.write_file(str(tmp_path / "empty"), "")
        assert result.bytes_written == 0

    @pytest.mark.asyncio
    async def test_read_missing_file(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        with pytest.raises(ActionExecutionError, match="Error reading file"):
            await runner.read_file(str(tmp_path / "missing.txt"))

    @pytest.mark.asyncio
    async def test_read_invalid_utf8(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        path = tmp_path / "binary"
        path.write_bytes(b"\xff\xfe\x00")
        with pytest.raises(ActionExecutionError, match="invalid characters"):
            await runner.read_file(str(path))

    @pytest.mark.asyncio
    async def test_write_into_missing_directory(
        self, runner: LocalActionRunner, tmp_path: Path
    ) -> None:
        with pytest.raises(ActionExecutionError, match="Error writing file"):
            await runner.write_file(str(tmp_path / "nope" / "file.txt"), "x")


class TestExecute:
    @pytest.mark.asyncio
    async def test_dispatches_each_action(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        path = str(tmp_path / "f.txt")
        assert await runner.execute(WriteAction(path=path, content="abc")) == WriteResult(
            bytes_written=3
        )
        assert await runner.execute(ReadAction(path=path)) == ReadResult(content="abc")
        result = await runner.execute(CommandAction(command=f"cat {path}"))
        assert result.stdout == "abc"

    @pytest.mark.asyncio
    async def test_module_execute_uses_given_runner(self, mock_runner: AsyncMock) -> None:
        action = CommandAction(command="ls")
        await execute(action, runner=mock_runner)
        mock_runner.execute.assert_awaited_once_with(action)

    @pytest.mark.asyncio
    async def test_module_execute_defaults_to_local(self) -> None:
        result = await execute(CommandAction(command="echo local"))
        assert result.stdout == "local\n"

    @pytest.mark.asyncio
    async def test_unknown_action_type(self, runner: LocalActionRunner) -> None:
        with pytest.raises(TypeError):
            await runner.execute("not an action")  # type: ignore[arg-type]


class TestNulBytes:
    @pytest.mark.asyncio
    async def test_command_with_nul(self, runner: LocalActionRunner) -> None:
        with pytest.raises(ActionExecutionError, match="Error executing command"):
            await runner.run_command("echo a\x00b")

    @pytest.mark.asyncio
    async def test_read_path_with_nul(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        with pytest.raises(ActionExecutionError, match="Error reading file"):
            await runner.read_file(f"{tmp_path}/a\x00b")

    @pytest.mark.asyncio
    async def test_write_path_with_nul(self, runner: LocalActionRunner, tmp_path: Path) -> None:
        with pytest.raises(ActionExecutionError, match="Error writing file"):
            await runner.write_file(f"{tmp_path}/a\x00b", "x")
