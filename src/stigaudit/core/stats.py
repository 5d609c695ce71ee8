"""Compliance statistics aggregation."""

from __future__ import annotations

import math
from typing import Iterable

from ..models.benchmark import Benchmark, Rule, RuleStatus
from ..models.compliance import ComplianceStats

_STATUS_FIELD = {
    RuleStatus.COMPLIANT: "compliant",
    RuleStatus.OPEN: "open",
    RuleStatus.NOT_CHECKED: "not_checked",
    RuleStatus.NOT_APPLICABLE: "not_applicable",
    RuleStatus.ERROR: "error",
}


def compliance_rate(compliant: int, checkable: int) -> int:
    """Percentage of checkable rules that are compliant, rounded half up.

    Zero when nothing is checkable.
    """
    if checkable <= 0:
        return 0
    return int(math.floor(compliant / checkable * 100 + 0.5))


def aggregate(rules: Iterable[Rule]) -> ComplianceStats:
    counts = {name: 0 for name in _STATUS_FIELD.values()}
    total = 0
    for rule in rules:
        total += 1
        counts[_STATUS_FIELD[rule.status]] += 1

    stats = ComplianceStats(total=total, **counts)
    stats.rate = compliance_rate(stats.compliant, stats.checkable)
    return stats


def aggregate_by_benchmark(benchmarks: Iterable[Benchmark]) -> dict[str, ComplianceStats]:
    return {benchmark.id: aggregate(benchmark.rules) for benchmark in benchmarks}
