"""
pytest-benchmark entry points for the loop benchmarks.

Usage:
    pytest benchmarks/test_bench_loops.py --benchmark-only
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from benchmarks.bench_loops import BENCHMARKS
from logicloops.compiler.loop_compiler import LoopCompiler
from logicloops.runtime.engine import Engine


@pytest.mark.parametrize("name", sorted(BENCHMARKS))
def test_compiled(benchmark, name):
    compiler = LoopCompiler(Engine())
    answer = benchmark(compiler.query, BENCHMARKS[name])
    assert answer is not None


@pytest.mark.parametrize("name", sorted(BENCHMARKS))
def test_interpreted(benchmark, name):
    engine = Engine()
    answer = benchmark(engine.query, BENCHMARKS[name])
    assert answer is not None
