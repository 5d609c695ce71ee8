"""STIG service: stateful entry point used by the CLI.

Owns the benchmark store and configuration, and wires the file lister,
document parser and command executor into the compliance engine.
"""

from __future__ import annotations

import copy
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from ..executors.base import CommandExecutor, get_executor
from ..formatters.csv_report import export_csv, write_report
from ..models.benchmark import Benchmark, Rule
from ..models.compliance import ComplianceStats
from .config import deep_merge, default_config_path, get_effective_config, save_config
from .parser import DocumentParseError, DocumentParser, XccdfParser, build_benchmark
from .runner import run_checks, utcnow
from .scanner import list_benchmark_files
from .stats import aggregate, aggregate_by_benchmark
from .store import BenchmarkStore

console = Console()

FileLister = Callable[[Path], list[Path]]
ReportWriter = Callable[[str, Path], Path]


class StigService:
    def __init__(
        self,
        config_path: Optional[Path] = None,
        cli_overrides: Optional[dict] = None,
        executor: Optional[CommandExecutor] = None,
        parser: Optional[DocumentParser] = None,
        file_lister: FileLister = list_benchmark_files,
        store: Optional[BenchmarkStore] = None,
        report_writer: ReportWriter = write_report,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config_path = Path(config_path) if config_path else default_config_path()
        self._config = get_effective_config(self.config_path, cli_overrides)
        self._executor = executor
        self.parser = parser or XccdfParser()
        self.file_lister = file_lister
        self.store = store or BenchmarkStore()
        self.report_writer = report_writer
        self.clock = clock

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_config(self) -> dict:
        return copy.deepcopy(self._config)

    def save_config(self, partial: dict) -> dict:
        """Apply ``partial`` to the running config and persist it."""
        self._config = deep_merge(self._config, partial)
        try:
            save_config(self.config_path, partial)
        except OSError as e:
            console.print(f"  [red]ERROR[/red] Failed to save config: {e}")
        return self.get_config()

    @property
    def executor(self) -> CommandExecutor:
        if self._executor is None:
            self._executor = get_executor(self._config)
        return self._executor

    # ------------------------------------------------------------------
    # Benchmarks
    # ------------------------------------------------------------------

    def get_benchmarks(self) -> list[Benchmark]:
        return self.store.benchmarks()

    def get_all_rules(self) -> list[Rule]:
        return self.store.all_rules()

    def scan(
        self,
        on_benchmark_loaded: Optional[Callable[[Benchmark], None]] = None,
    ) -> list[Benchmark]:
        """Discover and parse benchmark files, replacing the loaded set.

        A file that cannot be read or parsed is skipped with a warning.
        """
        directory = Path(self._config.get("stig", {}).get("source_directory", ""))
        console.print(f"  [cyan]Scanning STIG directory: {directory}[/cyan]")

        files = self.file_lister(directory)
        console.print(f"  Found {len(files)} potential STIG files")

        benchmarks: list[Benchmark] = []
        for path in files:
            try:
                parsed = self.parser.parse(Path(path).read_bytes())
                benchmark = build_benchmark(parsed, source_file=str(path), clock=self.clock)
            except (DocumentParseError, OSError, ValueError) as e:
                console.print(f"  [yellow]WARN[/yellow] Skipped {Path(path).name}: {e}")
                continue

            benchmarks.append(benchmark)
            console.print(
                f"  [green]OK[/green] Loaded: {benchmark.title} ({benchmark.rule_count} rules)"
            )
            if on_benchmark_loaded:
                on_benchmark_loaded(benchmark)

        self.store.replace_all(benchmarks)
        self.save_config({"stig": {"last_scan_timestamp": self.clock().isoformat()}})
        return benchmarks

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def run_checks(self, benchmark_id: Optional[str] = None) -> list[Rule]:
        """Check all loaded rules, or one benchmark's, and merge the results.

        Raises BenchmarkNotFoundError when ``benchmark_id`` is not loaded.
        """
        rules = self.store.rules_for(benchmark_id)
        checks_config = self._config.get("checks", {})

        results = await run_checks(
            rules,
            self.executor,
            timeout_ms=int(checks_config.get("timeout_ms", 15000)),
            max_workers=int(checks_config.get("max_workers", 1)),
            clock=self.clock,
        )
        self.store.merge(results)
        return results

    def get_stats(self) -> ComplianceStats:
        return aggregate(self.store.all_rules())

    def get_benchmark_stats(self) -> dict[str, ComplianceStats]:
        return aggregate_by_benchmark(self.store.benchmarks())

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_results(self, destination: Path) -> bool:
        """Export every loaded rule as CSV. Returns False when the write fails."""
        content = export_csv(self.store.all_rules())
        try:
            written = self.report_writer(content, Path(destination))
        except OSError as e:
            console.print(f"  [red]ERROR[/red] Export failed: {e}")
            return False

        console.print(f"  [green]OK[/green] Report exported to {written}")
        return True
