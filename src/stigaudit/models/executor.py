"""Command executor data models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CommandResult(BaseModel):
    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
