"""Benchmark and rule data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field


class Severity(str, Enum):
    CAT_I = "CAT I"
    CAT_II = "CAT II"
    CAT_III = "CAT III"

    @classmethod
    def from_level(cls, level: object) -> "Severity":
        """Map an XCCDF severity level (high/medium/low) to a STIG category."""
        if isinstance(level, Severity):
            return level
        normalized = str(level or "").strip().lower()
        if normalized in ("high", "cat i"):
            return cls.CAT_I
        if normalized in ("low", "cat iii"):
            return cls.CAT_III
        return cls.CAT_II


class CheckType(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class RuleStatus(str, Enum):
    NOT_CHECKED = "Not Checked"
    COMPLIANT = "Compliant"
    OPEN = "Open"
    NOT_APPLICABLE = "Not Applicable"
    ERROR = "Error"


class Rule(BaseModel):
    """One checkable STIG requirement.

    Rules are frozen. A status change produces a new snapshot through
    ``model_copy(update=...)`` which the store swaps in on merge.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    vuln_id: str
    rule_id: str
    benchmark_id: str
    title: str
    description: str = ""
    check_content: str = ""
    fix_text: str = ""
    severity: Severity = Severity.CAT_II
    check_type: CheckType = CheckType.MANUAL
    status: RuleStatus = RuleStatus.NOT_CHECKED
    last_checked_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.benchmark_id, self.id)


class Benchmark(BaseModel):
    id: str
    title: str
    version: str = "Unknown"
    release_date: str = ""
    description: str = ""
    source_file: str = ""
    rules: list[Rule] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rule_count(self) -> int:
        return len(self.rules)
