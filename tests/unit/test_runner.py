"""Tests for core/runner.py."""

from __future__ import annotations

import asyncio

import pytest

from stigaudit.core.runner import check_rule, interpret_output, run_checks
from stigaudit.executors.base import ExecutorError
from stigaudit.models.benchmark import CheckType, RuleStatus
from stigaudit.models.executor import CommandResult


def by_id(rule):
    """Resolver that uses the rule id as its procedure."""
    return rule.id


class TestInterpretOutput:
    @pytest.mark.parametrize(
        "stdout,expected",
        [
            ("COMPLIANT", RuleStatus.COMPLIANT),
            ("  compliant\r\n", RuleStatus.COMPLIANT),
            ("OPEN", RuleStatus.OPEN),
            ("Not Compliant", RuleStatus.OPEN),
            ("not_applicable", RuleStatus.NOT_APPLICABLE),
            ("n/a", RuleStatus.NOT_APPLICABLE),
            ("", RuleStatus.NOT_CHECKED),
            ("UNKNOWN", RuleStatus.NOT_CHECKED),
            ("COMPLIANT\nOPEN", RuleStatus.NOT_CHECKED),
            (None, RuleStatus.NOT_CHECKED),
        ],
    )
    def test_tokens(self, stdout, expected):
        assert interpret_output(stdout) == expected


class TestCheckRule:
    @pytest.mark.asyncio
    async def test_manual_rule_never_executes(self, rule_factory, fake_executor, fixed_clock):
        rule = rule_factory(check_type=CheckType.MANUAL, status=RuleStatus.COMPLIANT)
        result = await check_rule(rule, fake_executor, clock=fixed_clock)
        assert result.status == RuleStatus.NOT_CHECKED
        assert result.last_checked_at == fixed_clock()
        assert fake_executor.calls == []

    @pytest.mark.asyncio
    async def test_unresolvable_is_not_checked(self, rule_factory, fake_executor, fixed_clock):
        rule = rule_factory(check_content="Interview the ISSO.", title="Documentation")
        result = await check_rule(rule, fake_executor, clock=fixed_clock)
        assert result.status == RuleStatus.NOT_CHECKED
        assert result.last_checked_at == fixed_clock()
        assert fake_executor.calls == []

    @pytest.mark.asyncio
    async def test_executor_output_sets_status(self, rule_factory, executor_factory):
        executor = executor_factory(default="OPEN")
        result = await check_rule(rule_factory(), executor)
        assert result.status == RuleStatus.OPEN
        assert len(executor.calls) == 1
        assert "Get-Service" in executor.calls[0][0]

    @pytest.mark.asyncio
    async def test_failed_exit_still_interprets_stdout(self, rule_factory, executor_factory):
        executor = executor_factory(default=CommandResult(success=False, stdout="N/A", exit_code=1))
        result = await check_rule(rule_factory(), executor)
        assert result.status == RuleStatus.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_executor_error_is_error_status(self, rule_factory, executor_factory, fixed_clock):
        executor = executor_factory(default=ExecutorError("Procedure timed out after 15000 ms"))
        result = await check_rule(rule_factory(), executor, clock=fixed_clock)
        assert result.status == RuleStatus.ERROR
        assert result.last_checked_at == fixed_clock()

    @pytest.mark.asyncio
    async def test_hanging_executor_times_out(self, rule_factory, monkeypatch):
        monkeypatch.setattr("stigaudit.core.runner.TIMEOUT_GRACE_SECONDS", 0.0)

        class HangingExecutor:
            name = "hang"

            async def run(self, procedure, timeout_ms):
                await asyncio.sleep(60)

        result = await check_rule(rule_factory(), HangingExecutor(), timeout_ms=20)
        assert result.status == RuleStatus.ERROR

    @pytest.mark.asyncio
    async def test_input_rule_not_mutated(self, rule_factory, fake_executor):
        rule = rule_factory()
        result = await check_rule(rule, fake_executor)
        assert result is not rule
        assert rule.status == RuleStatus.NOT_CHECKED
        assert rule.last_checked_at is None
        assert result.status == RuleStatus.COMPLIANT


class TestRunChecks:
    @pytest.mark.asyncio
    async def test_default_timeout_passed_to_executor(self, rule_factory, fake_executor):
        await run_checks([rule_factory()], fake_executor)
        assert fake_executor.calls[0][1] == 15000

    @pytest.mark.asyncio
    async def test_manual_rules_never_execute(self, rule_factory, fake_executor):
        rules = [
            rule_factory("V-1", check_type=CheckType.MANUAL),
            rule_factory("V-2"),
            rule_factory("V-3", check_type=CheckType.MANUAL),
        ]
        results = await run_checks(rules, fake_executor, resolver=by_id)
        assert [p for p, _ in fake_executor.calls] == ["V-2"]
        assert results[0].status == RuleStatus.NOT_CHECKED
        assert results[2].status == RuleStatus.NOT_CHECKED

    @pytest.mark.asyncio
    async def test_partial_failure_isolated(self, rule_factory, executor_factory):
        executor = executor_factory(responses={"V-2": ExecutorError("boom")}, default="COMPLIANT")
        rules = [rule_factory("V-1"), rule_factory("V-2"), rule_factory("V-3")]

        results = await run_checks(rules, executor, resolver=by_id)

        assert [r.status for r in results] == [
            RuleStatus.COMPLIANT,
            RuleStatus.ERROR,
            RuleStatus.COMPLIANT,
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, rule_factory, executor_factory):
        executor = executor_factory(responses={"V-1": KeyError("x")}, default="OPEN")
        results = await run_checks([rule_factory("V-1"), rule_factory("V-2")], executor, resolver=by_id)
        assert [r.status for r in results] == [RuleStatus.ERROR, RuleStatus.OPEN]

    @pytest.mark.asyncio
    async def test_every_rule_stamped(self, rule_factory, executor_factory, fixed_clock):
        executor = executor_factory(responses={"V-2": ExecutorError("boom")})
        rules = [
            rule_factory("V-1", check_type=CheckType.MANUAL),
            rule_factory("V-2"),
            rule_factory("V-3", check_content="Interview the ISSO.", title="Docs"),
        ]
        results = await run_checks(rules, executor, clock=fixed_clock)
        assert all(r.last_checked_at == fixed_clock() for r in results)

    @pytest.mark.asyncio
    async def test_duplicate_rule_executed_once(self, rule_factory, fake_executor):
        rule = rule_factory("V-1")
        results = await run_checks([rule, rule], fake_executor, resolver=by_id)
        assert len(fake_executor.calls) == 1
        assert results[0] == results[1]

    @pytest.mark.asyncio
    async def test_same_id_in_different_benchmarks_both_execute(self, rule_factory, fake_executor):
        rules = [rule_factory("V-1", "A_STIG"), rule_factory("V-1", "B_STIG")]
        results = await run_checks(rules, fake_executor, resolver=by_id)
        assert len(fake_executor.calls) == 2
        assert [r.benchmark_id for r in results] == ["A_STIG", "B_STIG"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, fake_executor):
        assert await run_checks([], fake_executor) == []


class TestRunChecksConcurrent:
    @pytest.mark.asyncio
    async def test_bounded_pool_preserves_order(self, rule_factory):
        in_flight = 0
        peak = 0

        class SlowExecutor:
            name = "slow"

            async def run(self, procedure, timeout_ms):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return CommandResult(success=True, stdout="OPEN" if procedure == "V-4" else "COMPLIANT")

        rules = [rule_factory(f"V-{i}") for i in range(1, 7)]
        results = await run_checks(rules, SlowExecutor(), max_workers=3, resolver=by_id)

        assert [r.id for r in results] == [f"V-{i}" for i in range(1, 7)]
        assert results[3].status == RuleStatus.OPEN
        assert 2 <= peak <= 3

    @pytest.mark.asyncio
    async def test_slow_check_does_not_block_others(self, rule_factory, monkeypatch):
        monkeypatch.setattr("stigaudit.core.runner.TIMEOUT_GRACE_SECONDS", 0.0)

        class MixedExecutor:
            name = "mixed"

            async def run(self, procedure, timeout_ms):
                if procedure == "V-1":
                    await asyncio.sleep(60)
                return CommandResult(success=True, stdout="COMPLIANT")

        rules = [rule_factory("V-1"), rule_factory("V-2"), rule_factory("V-3")]
        results = await run_checks(rules, MixedExecutor(), timeout_ms=50, max_workers=2, resolver=by_id)

        assert [r.status for r in results] == [
            RuleStatus.ERROR,
            RuleStatus.COMPLIANT,
            RuleStatus.COMPLIANT,
        ]
