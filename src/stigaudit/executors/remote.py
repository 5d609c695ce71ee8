"""Remote executor: delegates procedures to a host agent over HTTP.

The agent exposes ``POST /api/execute`` accepting ``{"script", "timeout_ms"}``
and answering ``{"success", "stdout", "stderr", "exit_code"}``.
"""

from __future__ import annotations

import os
from typing import Optional

import httpx

from ..models.executor import CommandResult
from ..utils.sanitize import sanitize_error
from .base import BaseExecutor, ExecutorError


class RemoteExecutor(BaseExecutor):
    name = "remote"

    def __init__(
        self,
        executor_config: dict,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(executor_config)
        self.transport = transport

    async def run(self, procedure: str, timeout_ms: int) -> CommandResult:
        endpoint = self.config.get("endpoint", "http://localhost:5985")
        token_env = self.config.get("token_env", "STIG_AGENT_TOKEN")
        token = os.environ.get(token_env, "")

        headers = {"content-type": "application/json"}
        if token:
            headers["authorization"] = f"Bearer {token}"

        body = {"script": procedure, "timeout_ms": timeout_ms}

        try:
            url = f"{endpoint.rstrip('/')}/api/execute"
            async with httpx.AsyncClient(timeout=timeout_ms / 1000, transport=self.transport) as client:
                response = await client.post(url, json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ExecutorError(f"Procedure timed out after {timeout_ms} ms") from e
        except httpx.HTTPStatusError as e:
            raise ExecutorError(
                sanitize_error(f"Agent returned {e.response.status_code}: {e.response.text[:200]}")
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ExecutorError(sanitize_error(str(e))) from e

        if not isinstance(data, dict):
            raise ExecutorError("Unexpected agent response")

        return CommandResult(
            success=bool(data.get("success", False)),
            stdout=str(data.get("stdout") or ""),
            stderr=str(data.get("stderr") or ""),
            exit_code=data.get("exit_code"),
        )
