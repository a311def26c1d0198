"""
Integration tests: the compiled path against the reference interpreter.

Validates:
  - Constant fill and reverse ranges
  - Accumulation is independent of iterator order
  - Terminating iterators of different lengths give no result
  - Count with an unbound high bound receives the number of iterations
  - Iteration counts of stepped ranges agree with numpy.arange
  - Compiled and interpreted loops give identical answers, in order
  - Long compiled loops run in constant stack
"""

import io

import numpy as np
import pytest

from logicloops.compiler.loop_compiler import LoopCompiler
from logicloops.core.terms import Struct, Var
from logicloops.runtime.engine import Engine


def _normalise(value):
    if isinstance(value, Var):
        return '_'
    if isinstance(value, list):
        return [_normalise(item) for item in value]
    if isinstance(value, Struct):
        return (value.name, [_normalise(arg) for arg in value.args])
    return value


def _normalise_answers(answers):
    return [{name: _normalise(value) for name, value in answer.items()} for answer in answers]


EQUIVALENCE_CASES = [
    "do((for_(_, 1, 5), foreach(X, L)), X == a)",
    "do((for_(I, 5, 1, -1), foreach(X, L)), X == I)",
    "do((for_(I, 5, 1), foreach(X, L)), X == I)",
    "do((foreach(X, [ab, cde, f]), fromto(0, S0, S1, Sum)), (atom_length(X, N), S1 is S0 + N))",
    "do((fromto(0, S0, S1, Sum), foreach(X, [ab, cde, f])), (atom_length(X, N), S1 is S0 + N))",
    "do((foreach(X, [a, b, c]), foreach(Y, [1, 2, 3, 4, 5])), true)",
    "do((count(I, 1, Max), fromto(1, A, B, 8)), B is A * 2)",
    "do((count(I, 1, N), foreach(X, [a, b, c])), true)",
    "do((foreach(X, [1, 2]), fromto([], A0, A1, Acc)), ((Y in [a, b]), A1 == [Y, *A0]))",
    "do((foreacharg(A, f(x, y, z), I), foreach(P, Ps)), P == pair(A, I))",
    "K == 10, do((foreach(X, [1, 2]), foreach(Y, L), param(K)), Y is X * K)",
    "do((foreach(Row, [[1, 2], [3]]), foreach(N, Ns)),"
    " do((foreach(X, Row), fromto(0, A, B, N)), B is A + X))",
    "H == 9, do((for_(I, 1, H, 4), foreach(X, L)), X == I)",
    "H == 1, do((for_(I, 9, H, -4), foreach(X, L)), X == I)",
    "Lo == 3, do((for_(I, Lo, 6), foreach(X, L)), X == I)",
    "Lo == 3, do((for_(I, Lo, 1, -1), foreach(X, L)), X == I)",
    "L == [a, *T], do((foreach(X, L), count(I, 1, 3)), true)",
    "do(foreach(X, [1, 2, 3]), X < 3)",
    "do((foreach(X, [1, 2, 3]), foreach(Y, Ys)), (X > 1) >> (Y == big) | (Y == small))",
    "do(fromto([a, b, c], [H, *T], T, []), true)",
]


class TestSpecifiedProperties:
    def setup_method(self):
        self.compiler = LoopCompiler(Engine())

    def test_constant_fill(self):
        answer = self.compiler.query("do((for_(_, 1, 5), foreach(X, L)), X == a)")
        assert answer['L'] == ['a', 'a', 'a', 'a', 'a']

    def test_reverse_range(self):
        answer = self.compiler.query("do((for_(I, 5, 1, -1), foreach(X, L)), X == I)")
        assert answer['L'] == [5, 4, 3, 2, 1]

    def test_accumulation_is_order_independent(self):
        body = "(atom_length(X, N), S1 is S0 + N)"
        first = self.compiler.query(
            f"do((foreach(X, [ab, cde, f]), fromto(0, S0, S1, Sum)), {body})")
        second = self.compiler.query(
            f"do((fromto(0, S0, S1, Sum), foreach(X, [ab, cde, f])), {body})")
        assert first['Sum'] == second['Sum'] == 6

    def test_different_lengths_have_no_result(self):
        assert self.compiler.query(
            "do((foreach(X, [a, b, c]), foreach(Y, [1, 2, 3, 4, 5])), true)") is None

    def test_count_receives_iterations(self):
        answer = self.compiler.query("do((count(I, 1, Max), fromto(1, A, B, 8)), B is A * 2)")
        assert answer['Max'] == 3
        answer = self.compiler.query("do((count(I, 5, Max), foreach(X, [a, b])), true)")
        assert answer['Max'] == 6

    def test_idempotent_caching(self):
        text = "do((foreach(X, [1, 2]), fromto(0, S0, S1, S)), S1 is S0 + X)"
        first = self.compiler.query(text)
        count = len(self.compiler.engine.procedure_cache)
        second = self.compiler.query(text)
        assert first['S'] == second['S'] == 3
        assert len(self.compiler.engine.procedure_cache) == count

    @pytest.mark.parametrize("step", [-3, -2, -1, 1, 2, 3])
    def test_iteration_counts_match_numpy(self, step):
        engine = Engine()
        compiler = LoopCompiler(engine)
        for low in range(-4, 5):
            for high in range(-4, 5):
                text = f"do((for_(I, {low}, {high}, {step}), count(C, 1, N)), true)"
                end = high + (1 if step > 0 else -1)
                expected = len(np.arange(low, end, step))
                assert compiler.query(text)['N'] == expected
                assert engine.query(text)['N'] == expected

    def test_long_compiled_loop(self):
        answer = self.compiler.query(
            "do((for_(I, 1, 100000), fromto(0, S0, S1, S)), S1 is S0 + I)")
        assert answer['S'] == 100000 * 100001 // 2

    def test_long_list_built_and_consumed(self):
        answer = self.compiler.query(
            "do((for_(I, 1, 50000), foreach(X, L)), X == I),"
            " do((foreach(Y, L), fromto(0, S0, S1, S)), S1 is S0 + Y)")
        assert answer['S'] == 50000 * 50001 // 2


class TestCompiledMatchesInterpreted:
    @pytest.mark.parametrize("text", EQUIVALENCE_CASES)
    def test_same_answers(self, text):
        interpreted = Engine().query_all(text)
        compiled = LoopCompiler(Engine()).query_all(text)
        assert _normalise_answers(compiled) == _normalise_answers(interpreted)

    def test_same_output(self):
        text = "do((for_(I, 1, 3), foreach(X, [a, b, c])), (write(I), write(X)))"
        interpreted_out, compiled_out = io.StringIO(), io.StringIO()
        Engine(output=interpreted_out).query(text)
        LoopCompiler(Engine(output=compiled_out)).query(text)
        assert compiled_out.getvalue() == interpreted_out.getvalue() == "1a2b3c"

    def test_same_errors(self):
        text = "do(foreach(X, [1, 2]), Y is X + Z)"
        with pytest.raises(Exception) as interpreted:
            Engine().query(text)
        with pytest.raises(Exception) as compiled:
            LoopCompiler(Engine()).query(text)
        assert type(compiled.value) is type(interpreted.value)
