"""In-memory benchmark store."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from ..models.benchmark import Benchmark, Rule


class BenchmarkNotFoundError(ValueError):
    """Raised when a check run is scoped to a benchmark that is not loaded."""


class BenchmarkStore:
    """Holds loaded benchmarks and merges fresh rule results back into them.

    Reads and writes are serialized. A merge swaps in new Benchmark objects
    instead of editing the stored ones, so a benchmark handed out earlier
    keeps the statuses it had at that time.
    """

    def __init__(self, benchmarks: Optional[Iterable[Benchmark]] = None):
        self._benchmarks: list[Benchmark] = list(benchmarks or [])
        self._lock = threading.Lock()

    def replace_all(self, benchmarks: Iterable[Benchmark]) -> None:
        with self._lock:
            self._benchmarks = list(benchmarks)

    def benchmarks(self) -> list[Benchmark]:
        with self._lock:
            return list(self._benchmarks)

    def get(self, benchmark_id: str) -> Optional[Benchmark]:
        return next((b for b in self.benchmarks() if b.id == benchmark_id), None)

    def all_rules(self) -> list[Rule]:
        return [rule for benchmark in self.benchmarks() for rule in benchmark.rules]

    def rules_for(self, benchmark_id: Optional[str] = None) -> list[Rule]:
        """Rules of one benchmark, or of every benchmark when no id is given."""
        if benchmark_id is None:
            return self.all_rules()
        benchmark = self.get(benchmark_id)
        if benchmark is None:
            raise BenchmarkNotFoundError(f"Benchmark not loaded: {benchmark_id}")
        return list(benchmark.rules)

    def merge(self, results: Iterable[Rule]) -> int:
        """Write results back by (rule id, benchmark id). Returns rules replaced.

        Rules without a counterpart in ``results`` are left untouched.
        """
        by_key = {rule.key: rule for rule in results}
        replaced = 0
        with self._lock:
            updated: list[Benchmark] = []
            for benchmark in self._benchmarks:
                matched = [(benchmark.id, rule.id) in by_key for rule in benchmark.rules]
                if any(matched):
                    rules = [by_key.get((benchmark.id, rule.id), rule) for rule in benchmark.rules]
                    benchmark = benchmark.model_copy(update={"rules": rules})
                    replaced += sum(matched)
                updated.append(benchmark)
            self._benchmarks = updated
        return replaced
