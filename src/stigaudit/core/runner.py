"""Compliance runner.

Classifies, resolves and dispatches each rule, then turns the executor's
output into a rule status. Per-rule failures are recorded on the rule as
``Error`` and never abort the batch.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from rich.console import Console

from ..compliance.resolver import resolve
from ..executors.base import CommandExecutor
from ..models.benchmark import CheckType, Rule, RuleStatus
from ..utils.sanitize import sanitize_error

console = Console()

DEFAULT_TIMEOUT_MS = 15000

# Headroom over the executor's own deadline before the runner gives up on it.
TIMEOUT_GRACE_SECONDS = 2.0

_OUTPUT_STATUS = {
    "COMPLIANT": RuleStatus.COMPLIANT,
    "OPEN": RuleStatus.OPEN,
    "NOT COMPLIANT": RuleStatus.OPEN,
    "NOT_APPLICABLE": RuleStatus.NOT_APPLICABLE,
    "N/A": RuleStatus.NOT_APPLICABLE,
}

Resolver = Callable[[Rule], Optional[str]]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def interpret_output(stdout: Optional[str]) -> RuleStatus:
    """Map a procedure's verdict token to a rule status.

    Unrecognized or empty output means the procedure could not decide, so the
    rule stays Not Checked.
    """
    token = (stdout or "").strip().upper()
    return _OUTPUT_STATUS.get(token, RuleStatus.NOT_CHECKED)


async def check_rule(
    rule: Rule,
    executor: CommandExecutor,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    resolver: Resolver = resolve,
    clock: Clock = utcnow,
) -> Rule:
    """Check a single rule and return an updated snapshot."""
    if rule.check_type == CheckType.MANUAL:
        return rule.model_copy(update={"status": RuleStatus.NOT_CHECKED, "last_checked_at": clock()})

    procedure = resolver(rule)
    if not procedure:
        return rule.model_copy(update={"status": RuleStatus.NOT_CHECKED, "last_checked_at": clock()})

    try:
        result = await asyncio.wait_for(
            executor.run(procedure, timeout_ms),
            timeout=timeout_ms / 1000 + TIMEOUT_GRACE_SECONDS,
        )
        status = interpret_output(result.stdout)
    except asyncio.TimeoutError:
        console.print(f"  [red]ERROR[/red] {rule.vuln_id}: check timed out after {timeout_ms} ms")
        status = RuleStatus.ERROR
    except Exception as e:
        console.print(f"  [red]ERROR[/red] {rule.vuln_id}: {sanitize_error(str(e))}")
        status = RuleStatus.ERROR

    return rule.model_copy(update={"status": status, "last_checked_at": clock()})


async def run_checks(
    rules: Sequence[Rule],
    executor: CommandExecutor,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    max_workers: int = 1,
    resolver: Resolver = resolve,
    clock: Clock = utcnow,
) -> list[Rule]:
    """Run compliance checks for ``rules``.

    Returns updated snapshots in input order; the input rules are not
    modified. With ``max_workers`` of 1 rules are checked strictly one at a
    time. Larger values run independent rules concurrently behind a bounded
    pool. A rule key that appears more than once in a batch is executed once.
    """
    console.print(f"  [cyan]Running compliance checks on {len(rules)} rules...[/cyan]")

    if max_workers <= 1:
        checked: dict[tuple[str, str], Rule] = {}
        for rule in rules:
            if rule.key not in checked:
                checked[rule.key] = await check_rule(rule, executor, timeout_ms, resolver, clock)
        results = [checked[rule.key] for rule in rules]
    else:
        semaphore = asyncio.Semaphore(max_workers)

        async def _bounded(rule: Rule) -> Rule:
            async with semaphore:
                return await check_rule(rule, executor, timeout_ms, resolver, clock)

        tasks: dict[tuple[str, str], asyncio.Task[Rule]] = {}
        for rule in rules:
            if rule.key not in tasks:
                tasks[rule.key] = asyncio.ensure_future(_bounded(rule))
        await asyncio.gather(*tasks.values())
        results = [tasks[rule.key].result() for rule in rules]

    errors = sum(1 for r in results if r.status == RuleStatus.ERROR)
    console.print(
        f"  [green]OK[/green] Compliance check complete: {len(results)} rules"
        + (f", [red]{errors} errors[/red]" if errors else "")
    )
    return results
