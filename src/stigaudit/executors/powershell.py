"""Local PowerShell executor."""

from __future__ import annotations

import asyncio

from ..models.executor import CommandResult
from ..utils.sanitize import sanitize_error
from .base import BaseExecutor, ExecutorError

DEFAULT_ARGUMENTS = ["-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command"]


class PowerShellExecutor(BaseExecutor):
    name = "powershell"

    @property
    def command_prefix(self) -> list[str]:
        executable = self.config.get("executable", "powershell.exe")
        arguments = self.config.get("arguments", DEFAULT_ARGUMENTS)
        return [executable, *arguments]

    async def run(self, procedure: str, timeout_ms: int) -> CommandResult:
        command = [*self.command_prefix, procedure]

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutorError(sanitize_error(f"Failed to start {command[0]}: {e}")) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ExecutorError(f"Procedure timed out after {timeout_ms} ms") from e

        return CommandResult(
            success=process.returncode == 0,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
        )
