"""Compliance statistics data models."""

from __future__ import annotations

from pydantic import BaseModel


class ComplianceStats(BaseModel):
    """Status counts and compliance rate for a rule collection.

    ``rate`` is the percentage of checkable rules found compliant, where
    not-applicable, not-checked and errored rules are excluded from the
    denominator.
    """

    total: int = 0
    compliant: int = 0
    open: int = 0
    not_checked: int = 0
    not_applicable: int = 0
    error: int = 0
    rate: int = 0

    @property
    def checkable(self) -> int:
        return self.total - self.not_applicable - self.not_checked - self.error
