"""Benchmark file discovery.

Finds candidate XCCDF/STIG files under a source directory.
"""

from __future__ import annotations

import re
from itertools import islice
from pathlib import Path

NAME_PATTERN = re.compile(r"xccdf|stig|benchmark", re.IGNORECASE)

HEADER_LINES = 5


def _header_mentions_benchmark(path: Path) -> bool:
    """Check whether the first few lines of a file mention a Benchmark element."""
    try:
        with path.open("r", encoding="utf-8", errors="ignore") as handle:
            head = "".join(islice(handle, HEADER_LINES))
    except OSError:
        return False
    return "Benchmark" in head


def list_benchmark_files(directory: Path) -> list[Path]:
    """Recursively list XML files that look like STIG benchmarks."""
    directory = Path(directory)
    if not directory.is_dir():
        return []

    files: list[Path] = []
    for xml_file in directory.rglob("*"):
        if not xml_file.is_file() or xml_file.suffix.lower() != ".xml":
            continue
        if NAME_PATTERN.search(xml_file.name) or _header_mentions_benchmark(xml_file):
            files.append(xml_file)

    return sorted(files)
