"""Check mapping table.

Maps STIG check-content wording to PowerShell verification procedures.
Every procedure prints a single verdict token (COMPLIANT / OPEN) that the
runner interprets.

The table is ordered: the resolver stops at the first mapping whose pattern
matches, so more specific patterns must come before general ones.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from ..models.benchmark import Rule

ProcedureGenerator = Callable[["re.Match[str]", Rule], str]


@dataclass(frozen=True)
class CheckMapping:
    """A check-content pattern paired with the procedure it produces."""

    name: str
    pattern: "re.Pattern[str]"
    generator: ProcedureGenerator

    def match(self, text: str) -> "re.Match[str] | None":
        return self.pattern.search(text or "")


@dataclass(frozen=True)
class GenericCheck:
    """Keyword-triggered fallback procedure.

    Triggers when the text contains every keyword in ``all_of`` (if any) and
    at least one keyword in ``any_of`` (if any).
    """

    name: str
    procedure: str
    all_of: tuple[str, ...] = ()
    any_of: tuple[str, ...] = ()

    def applies_to(self, text: str) -> bool:
        if self.all_of and not all(keyword in text for keyword in self.all_of):
            return False
        if self.any_of and not any(keyword in text for keyword in self.any_of):
            return False
        return bool(self.all_of or self.any_of)


# ---------------------------------------------------------------------------
# Procedure generators
# ---------------------------------------------------------------------------

def _service_running(match: "re.Match[str]", rule: Rule) -> str:
    return f"""
$service = Get-Service -Name "{match.group(1)}" -ErrorAction SilentlyContinue
if ($service -and $service.Status -eq 'Running') {{ Write-Output "COMPLIANT" }} else {{ Write-Output "OPEN" }}
"""


def _registry_value(match: "re.Match[str]", rule: Rule) -> str:
    path, name, expected = match.group(1), match.group(2), match.group(3)
    return f"""
try {{
  $val = Get-ItemProperty -Path "HKLM:\\{path}" -Name "{name}" -ErrorAction Stop
  if ($val."{name}" -eq "{expected}") {{ Write-Output "COMPLIANT" }} else {{ Write-Output "OPEN" }}
}} catch {{ Write-Output "OPEN" }}
"""


def _windows_feature(match: "re.Match[str]", rule: Rule) -> str:
    return f"""
$feature = Get-WindowsFeature -Name "{match.group(1)}" -ErrorAction SilentlyContinue
if ($feature -and $feature.Installed) {{ Write-Output "COMPLIANT" }} else {{ Write-Output "OPEN" }}
"""


def _firewall_enabled(match: "re.Match[str]", rule: Rule) -> str:
    return """
$profiles = Get-NetFirewallProfile | Where-Object { $_.Enabled -eq $true }
if ($profiles.Count -eq 3) { Write-Output "COMPLIANT" } else { Write-Output "OPEN" }
"""


def _audit_policy(match: "re.Match[str]", rule: Rule) -> str:
    return f"""
$audit = auditpol /get /subcategory:"{match.group(1)}" 2>$null
if ($audit -match "Success|Failure") {{ Write-Output "COMPLIANT" }} else {{ Write-Output "OPEN" }}
"""


def _password_policy(match: "re.Match[str]", rule: Rule) -> str:
    return """
$tempFile = "$env:TEMP\\secpol_$(Get-Random).cfg"
secedit /export /cfg $tempFile /quiet 2>$null
if (Test-Path $tempFile) {
  $content = Get-Content $tempFile -Raw
  Remove-Item $tempFile -Force
  if ($content -match "MinimumPasswordLength\\s*=\\s*(\\d+)" -and [int]$Matches[1] -ge 14) {
    Write-Output "COMPLIANT"
  } else {
    Write-Output "OPEN"
  }
} else {
  Write-Output "OPEN"
}
"""


CHECK_MAPPINGS: tuple[CheckMapping, ...] = (
    CheckMapping(
        name="service-running",
        pattern=re.compile(
            r"""(?:service|verify).+["']?(\w+)["']?.+(?:running|started|enabled)""",
            re.IGNORECASE,
        ),
        generator=_service_running,
    ),
    CheckMapping(
        name="registry-value",
        pattern=re.compile(
            r"""registry.+HKLM[:\\]+([\w\\]+).+["']?(\w+)["']?.+(?:set to|equal|value).+["']?(\w+)["']?""",
            re.IGNORECASE,
        ),
        generator=_registry_value,
    ),
    CheckMapping(
        name="windows-feature",
        pattern=re.compile(
            r"""(?:feature|role).+["']?([\w-]+)["']?.+(?:installed|enabled)""",
            re.IGNORECASE,
        ),
        generator=_windows_feature,
    ),
    CheckMapping(
        name="firewall-enabled",
        pattern=re.compile(r"(?:windows firewall|firewall profile).+(?:enabled|on)", re.IGNORECASE),
        generator=_firewall_enabled,
    ),
    CheckMapping(
        name="audit-policy",
        pattern=re.compile(
            r"""audit.+["']?([\w\s]+)["']?.+(?:success|failure|enabled)""",
            re.IGNORECASE,
        ),
        generator=_audit_policy,
    ),
    CheckMapping(
        name="password-policy",
        pattern=re.compile(r"(?:password|account|lockout).+(?:policy|setting)", re.IGNORECASE),
        generator=_password_policy,
    ),
)


# ---------------------------------------------------------------------------
# Keyword fallbacks
# ---------------------------------------------------------------------------

GENERIC_CHECKS: tuple[GenericCheck, ...] = (
    GenericCheck(
        name="wsus-service",
        all_of=("wsus", "service"),
        procedure="""
$service = Get-Service -Name "WsusService" -ErrorAction SilentlyContinue
if ($service -and $service.Status -eq 'Running') { Write-Output "COMPLIANT" } else { Write-Output "OPEN" }
""",
    ),
    GenericCheck(
        name="sql-server-service",
        all_of=("sql server", "service"),
        procedure="""
$services = Get-Service -Name "MSSQL*" -ErrorAction SilentlyContinue | Where-Object { $_.Status -eq 'Running' }
if ($services.Count -gt 0) { Write-Output "COMPLIANT" } else { Write-Output "OPEN" }
""",
    ),
    GenericCheck(
        name="iis-service",
        any_of=("iis", "w3svc"),
        procedure="""
$service = Get-Service -Name "W3SVC" -ErrorAction SilentlyContinue
if ($service -and $service.Status -eq 'Running') { Write-Output "COMPLIANT" } else { Write-Output "OPEN" }
""",
    ),
    GenericCheck(
        name="transport-security",
        any_of=("https", "ssl", "tls"),
        procedure="""
try {
  $wsusConfig = Get-ItemProperty -Path "HKLM:\\SOFTWARE\\Microsoft\\Update Services\\Server\\Setup" -ErrorAction Stop
  if ($wsusConfig.UsingSSL -eq 1) { Write-Output "COMPLIANT" } else { Write-Output "OPEN" }
} catch { Write-Output "OPEN" }
""",
    ),
    GenericCheck(
        name="windows-update-policy",
        any_of=("windows update", "automatic update"),
        procedure="""
$au = Get-ItemProperty -Path "HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\WindowsUpdate\\Auto Update" -ErrorAction SilentlyContinue
if ($au -and $au.AUOptions -ge 3) { Write-Output "COMPLIANT" } else { Write-Output "OPEN" }
""",
    ),
)
