"""Command executor abstraction.

An executor runs one verification procedure on the target host and returns
its captured output. Executors must honor the caller's timeout by failing,
never by blocking.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ..models.executor import CommandResult


class ExecutorError(RuntimeError):
    """Raised when a procedure cannot be executed or exceeds its timeout."""


@runtime_checkable
class CommandExecutor(Protocol):
    """Protocol that all command executors must implement."""

    name: str

    async def run(self, procedure: str, timeout_ms: int) -> CommandResult: ...


class BaseExecutor:
    """Base class holding executor-specific config."""

    name: str = "base"

    def __init__(self, executor_config: dict):
        self.config = executor_config

    async def run(self, procedure: str, timeout_ms: int) -> CommandResult:
        raise NotImplementedError


def get_executor(
    config: dict,
    executor_override: Optional[str] = None,
) -> BaseExecutor:
    """Factory function to create the configured command executor."""
    executor_section = config.get("executor", {})
    executor_name = executor_override or executor_section.get("type", "powershell")
    executor_config = dict(executor_section.get(executor_name, {}))

    if executor_name == "powershell":
        from .powershell import PowerShellExecutor
        return PowerShellExecutor(executor_config)
    elif executor_name == "remote":
        from .remote import RemoteExecutor
        return RemoteExecutor(executor_config)
    else:
        raise ValueError(f"Unknown executor: {executor_name}")
