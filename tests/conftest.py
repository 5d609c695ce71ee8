"""Shared fixtures for STIG Audit tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Union

import pytest

from stigaudit.models.benchmark import Benchmark, CheckType, Rule, RuleStatus, Severity
from stigaudit.models.executor import CommandResult

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeExecutor:
    """Executor double: answers procedures from a table and records every call.

    A table value may be a stdout string, a CommandResult, or an exception
    instance to raise.
    """

    name = "fake"

    def __init__(self, responses: dict | None = None, default: Union[str, Exception] = "COMPLIANT"):
        self.responses = responses or {}
        self.default = default
        self.calls: list[tuple[str, int]] = []

    async def run(self, procedure: str, timeout_ms: int) -> CommandResult:
        self.calls.append((procedure, timeout_ms))
        response = self.responses.get(procedure, self.default)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, CommandResult):
            return response
        return CommandResult(success=True, stdout=response, exit_code=0)


def make_rule(
    rule_id: str = "V-1001",
    benchmark_id: str = "Test_STIG",
    check_content: str = "Verify the WsusService service is running.",
    check_type: CheckType = CheckType.AUTO,
    status: RuleStatus = RuleStatus.NOT_CHECKED,
    title: str = "Test rule",
    **kwargs,
) -> Rule:
    return Rule(
        id=rule_id,
        vuln_id=kwargs.pop("vuln_id", rule_id),
        rule_id=kwargs.pop("sv_id", f"SV-{rule_id}_rule"),
        benchmark_id=benchmark_id,
        title=title,
        check_content=check_content,
        check_type=check_type,
        status=status,
        severity=kwargs.pop("severity", Severity.CAT_II),
        **kwargs,
    )


@pytest.fixture
def rule_factory() -> Callable[..., Rule]:
    return make_rule


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def executor_factory() -> type[FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def two_benchmarks() -> list[Benchmark]:
    """Two benchmarks with overlapping rule ids."""
    win = Benchmark(
        id="Windows_STIG",
        title="Windows Server STIG",
        version="2",
        rules=[
            make_rule("V-1", "Windows_STIG", status=RuleStatus.COMPLIANT),
            make_rule("V-2", "Windows_STIG", check_type=CheckType.MANUAL, check_content="Interview the ISSO."),
        ],
    )
    iis = Benchmark(
        id="IIS_STIG",
        title="IIS 10.0 STIG",
        version="1",
        rules=[
            make_rule("V-1", "IIS_STIG", status=RuleStatus.OPEN,
                      last_checked_at=datetime(2025, 1, 1, tzinfo=timezone.utc)),
            make_rule("V-3", "IIS_STIG", status=RuleStatus.ERROR),
        ],
    )
    return [win, iis]


SAMPLE_XCCDF = """<?xml version="1.0" encoding="UTF-8"?>
<Benchmark xmlns="http://checklists.nist.gov/xccdf/1.1" id="WSUS_STIG" xml:lang="en">
  <status date="2024-01-01">accepted</status>
  <title>Windows Server Update Services STIG</title>
  <description>Security requirements for WSUS.</description>
  <version>3</version>
  <Group id="V-2200">
    <title>SRG-APP-000014</title>
    <Rule id="SV-2200r1_rule" severity="high" weight="10.0">
      <version>WSUS-01</version>
      <title>WSUS server must use HTTPS.</title>
      <description>&lt;VulnDiscussion&gt;Metadata must be encrypted in transit.&lt;/VulnDiscussion&gt;&lt;Documentable&gt;false&lt;/Documentable&gt;</description>
      <fixtext fixref="F-1">Configure WSUS to require SSL.</fixtext>
      <check system="C-1">
        <check-content>Open the registry at HKLM\\SOFTWARE\\Microsoft\\Update Services\\Server\\Setup and confirm UsingSSL is set to 1.</check-content>
      </check>
    </Rule>
  </Group>
  <Group id="V-2201">
    <title>SRG-APP-000015</title>
    <Rule id="SV-2201r1_rule" severity="low">
      <title>Documentation must be maintained.</title>
      <description>Keep documentation current.</description>
      <fixtext>Write the documentation.</fixtext>
      <check system="C-2">
        <check-content>Interview the system administrator about the documentation.</check-content>
      </check>
    </Rule>
  </Group>
  <Group id="V-2202">
    <title>SRG-APP-000016</title>
  </Group>
</Benchmark>
"""


@pytest.fixture
def sample_xccdf() -> str:
    return SAMPLE_XCCDF


@pytest.fixture
def stig_dir(tmp_path: Path) -> Path:
    """A STIG directory with one valid benchmark, one malformed file and one unrelated XML."""
    directory = tmp_path / "stigs"
    (directory / "nested").mkdir(parents=True)
    (directory / "U_WSUS_STIG_V3R1_Manual-xccdf.xml").write_text(SAMPLE_XCCDF, encoding="utf-8")
    (directory / "nested" / "broken_stig.xml").write_text("<Benchmark><Group>", encoding="utf-8")
    (directory / "settings.xml").write_text("<settings/>\n", encoding="utf-8")
    (directory / "readme.txt").write_text("STIG files live here\n", encoding="utf-8")
    return directory
