"""XCCDF benchmark parsing.

``XccdfParser`` turns a DISA STIG XCCDF document into plain benchmark and
rule records. ``build_benchmark`` turns those records into models, filling
defaults and classifying each rule.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

import defusedxml
from defusedxml import ElementTree as ET

from ..compliance.classifier import classify
from ..models.benchmark import Benchmark, Rule, RuleStatus, Severity


class DocumentParseError(ValueError):
    """Raised when a document is not a readable XCCDF benchmark."""


class DocumentParser(Protocol):
    def parse(self, content: Union[str, bytes]) -> dict: ...


def _local(tag: object) -> str:
    """Strip the namespace from an element tag."""
    return str(tag).rsplit("}", 1)[-1]


def _child(elem, name: str):
    return next((c for c in elem if _local(c.tag) == name), None)


def _text(elem) -> str:
    if elem is None:
        return ""
    return "".join(elem.itertext()).strip()


def _vuln_discussion(description: str) -> str:
    """STIG descriptions embed escaped markup; keep only the discussion body."""
    m = re.search(r"<VulnDiscussion>([\s\S]*?)</VulnDiscussion>", description)
    return m.group(1).strip() if m else description


class XccdfParser:
    """Namespace-agnostic XCCDF 1.1/1.2 parser backed by defusedxml."""

    def parse(self, content: Union[str, bytes]) -> dict:
        try:
            root = ET.fromstring(content)
        except (ET.ParseError, defusedxml.DefusedXmlException) as e:
            raise DocumentParseError(f"Invalid XML: {e}") from e

        benchmark = root if _local(root.tag) == "Benchmark" else next(
            (e for e in root.iter() if _local(e.tag) == "Benchmark"), None
        )
        if benchmark is None:
            raise DocumentParseError("Not a valid XCCDF benchmark file")

        info = {
            "id": benchmark.get("id", ""),
            "title": _text(_child(benchmark, "title")),
            "version": _text(_child(benchmark, "version")),
            "description": _text(_child(benchmark, "description")),
        }

        rules: list[dict] = []
        for group in benchmark.iter():
            if _local(group.tag) != "Group":
                continue
            rule = _child(group, "Rule")
            if rule is None:
                continue

            check = _child(rule, "check")
            rules.append({
                "id": group.get("id", ""),
                "vulnId": group.get("id", ""),
                "ruleId": rule.get("id", ""),
                "title": _text(_child(rule, "title")),
                "severity": rule.get("severity", "medium"),
                "description": _vuln_discussion(_text(_child(rule, "description"))),
                "checkContent": _text(_child(check, "check-content")) if check is not None else "",
                "fixText": _text(_child(rule, "fixtext")),
            })

        return {"benchmark": info, "rules": rules}

    def parse_file(self, path: Path) -> dict:
        return self.parse(Path(path).read_bytes())


def build_benchmark(
    parsed: dict,
    source_file: str = "",
    clock: Optional[Callable[[], datetime]] = None,
) -> Benchmark:
    """Build a Benchmark from parsed records, classifying every rule."""
    now = (clock or (lambda: datetime.now(timezone.utc)))()
    info = parsed.get("benchmark") or {}
    benchmark_id = info.get("id") or f"stig-{int(now.timestamp() * 1000)}"

    rules: list[Rule] = []
    for index, record in enumerate(parsed.get("rules") or []):
        check_content = record.get("checkContent") or ""
        rule_key = record.get("id") or f"rule-{index}"
        rules.append(Rule(
            id=rule_key,
            vuln_id=record.get("vulnId") or record.get("id") or f"V-{index}",
            rule_id=record.get("ruleId") or f"SV-{index}",
            benchmark_id=benchmark_id,
            title=record.get("title") or "Unknown Rule",
            description=record.get("description") or "",
            check_content=check_content,
            fix_text=record.get("fixText") or "",
            severity=Severity.from_level(record.get("severity")),
            check_type=classify(check_content),
            status=RuleStatus.NOT_CHECKED,
        ))

    return Benchmark(
        id=benchmark_id,
        title=info.get("title") or "Unknown STIG",
        version=info.get("version") or "Unknown",
        release_date=now.isoformat(),
        description=info.get("description") or "",
        source_file=str(source_file),
        rules=rules,
    )
