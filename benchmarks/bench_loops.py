"""
logicloops Loop Benchmarks
==========================

Times compiled loops (generated recursive procedures) against the
reference interpreter on the same queries and checks both give the
same answer.

Usage:
    python -m benchmarks.bench_loops
    python -m benchmarks.bench_loops --iterations 20
"""

import argparse
import gc
import statistics
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tabulate import tabulate

from logicloops.compiler.loop_compiler import LoopCompiler
from logicloops.core.terms import Var
from logicloops.runtime.engine import Engine
from logicloops.utils.helpers import Timer, format_ns, format_speedup


ITERATIONS = 10
WARMUP = 2

BENCHMARKS = {
    'sum_range': "do((for_(I, 1, 5000), fromto(0, S0, S1, S)), S1 is S0 + I)",
    'build_list': "do((for_(I, 1, 5000), foreach(X, L)), X is I * I)",
    'count_list': "do((for_(I, 1, 5000), foreach(I, L)), true), do((foreach(X, L), count(_, 1, N)), true)",
    'stepped_range': "do((for_(I, 1, 20000, 7), fromto(0, S0, S1, S)), S1 is S0 + I)",
    'struct_args': "functor(T, f, 200), do((foreacharg(A, T, I), param(T)), A == I)",
    'nested': "do(for_(I, 1, 60), do((for_(J, 1, 60), fromto(0, A, B, _)), B is A + I * J))",
    'param_scale': "K == 3, do((for_(I, 1, 3000), foreach(Y, L), param(K)), Y is I * K)",
}


@dataclass
class LoopBenchmarkResult:
    name: str
    interpreted_times_ns: List[int] = field(default_factory=list)
    compiled_times_ns: List[int] = field(default_factory=list)
    correct: bool = True
    error: Optional[str] = None

    @property
    def interpreted_median_ns(self) -> float:
        return statistics.median(self.interpreted_times_ns) if self.interpreted_times_ns else 0.0

    @property
    def compiled_median_ns(self) -> float:
        return statistics.median(self.compiled_times_ns) if self.compiled_times_ns else 0.0


def time_query(run, text: str, iterations: int, warmup: int) -> List[int]:
    """Time a query over multiple iterations, returning list of ns times."""
    for _ in range(warmup):
        run(text)

    times = []
    for _ in range(iterations):
        gc.disable()
        with Timer() as timer:
            run(text)
        gc.enable()
        times.append(timer.elapsed_ns)
    return times


def _comparable(value: Any) -> Any:
    if isinstance(value, Var):
        return None
    if isinstance(value, list):
        return [_comparable(item) for item in value]
    return value


def _answer_values(answer: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if answer is None:
        return None
    return {name: _comparable(value) for name, value in answer.items()}


def run_benchmark(name: str, text: str, iterations: int = ITERATIONS,
                  warmup: int = WARMUP) -> LoopBenchmarkResult:
    """Run one query interpreted and compiled."""
    result = LoopBenchmarkResult(name=name)
    engine = Engine()
    compiler = LoopCompiler(Engine())

    try:
        interpreted = engine.query(text)
        compiled = compiler.query(text)
    except Exception as e:
        result.error = str(e)
        result.correct = False
        return result
    result.correct = _answer_values(interpreted) == _answer_values(compiled)

    result.interpreted_times_ns = time_query(engine.query, text, iterations, warmup)
    result.compiled_times_ns = time_query(compiler.query, text, iterations, warmup)
    return result


def run_all_benchmarks(iterations: int = ITERATIONS, warmup: int = WARMUP) -> List[LoopBenchmarkResult]:
    results = []
    total = len(BENCHMARKS)
    for completed, (name, text) in enumerate(BENCHMARKS.items(), 1):
        print(f"  [{completed}/{total}] Running {name}...", end=" ", flush=True)
        result = run_benchmark(name, text, iterations, warmup)
        results.append(result)
        if result.error:
            print(f"ERROR: {result.error}")
        else:
            print("OK" if result.correct else "MISMATCH")
    return results


def print_summary(results: List[LoopBenchmarkResult]):
    """Print a formatted summary table."""
    rows = []
    for r in results:
        if r.error:
            rows.append([r.name, "N/A", "N/A", "N/A", "ERR"])
            continue
        rows.append([
            r.name,
            format_ns(r.interpreted_median_ns),
            format_ns(r.compiled_median_ns),
            format_speedup(r.interpreted_median_ns, r.compiled_median_ns),
            "OK" if r.correct else "FAIL",
        ])

    print(f"\n{'=' * 80}")
    print("  LOGICLOOPS BENCHMARK SUMMARY")
    print(f"  Python {sys.version.split()[0]} | {sys.platform}")
    print(f"{'=' * 80}\n")
    print(tabulate(rows, headers=["Benchmark", "Interpreted", "Compiled", "Speedup", "Status"]))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compiled vs interpreted loop benchmarks")
    parser.add_argument('--iterations', type=int, default=ITERATIONS)
    parser.add_argument('--warmup', type=int, default=WARMUP)
    args = parser.parse_args(argv)

    results = run_all_benchmarks(args.iterations, args.warmup)
    print_summary(results)
    return 0 if all(r.correct and not r.error for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
