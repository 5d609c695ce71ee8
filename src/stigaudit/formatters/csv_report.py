"""CSV compliance report formatter."""

from __future__ import annotations

import csv
import io
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable

from ..models.benchmark import Rule

CSV_COLUMNS = (
    "Vuln ID",
    "Rule ID",
    "STIG",
    "Title",
    "Severity",
    "Status",
    "Check Type",
    "Last Checked",
)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _field(value: str) -> str:
    """Flatten line breaks so every record stays on one line."""
    return _LINE_BREAK.sub(" ", value)


def _row(rule: Rule) -> list[str]:
    return [
        _field(value)
        for value in (
            rule.vuln_id,
            rule.rule_id,
            rule.benchmark_id,
            rule.title,
            rule.severity.value,
            rule.status.value,
            rule.check_type.value,
            rule.last_checked_at.isoformat() if rule.last_checked_at else "Never",
        )
    ]


def export_csv(rules: Iterable[Rule]) -> str:
    """Render rules as CSV.

    Every field is quoted and embedded quotes are doubled. Rows are separated
    by ``\\n`` with no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for rule in rules:
        writer.writerow(_row(rule))

    content = buffer.getvalue()
    return content[:-1] if content.endswith("\n") else content


def write_report(content: str, destination: Path) -> Path:
    """Write report content to ``destination`` atomically.

    The content goes to a temporary sibling first and replaces the
    destination only once fully written.
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, destination)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return destination
