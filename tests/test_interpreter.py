"""
Tests for the reference interpreter (do/2 run directly by the engine).

Validates:
  - Every iterator kind, alone and in lock-step combinations
  - Lists are grown when a foreach list is unbound
  - Mismatched iterator lengths give no solution
  - Body non-determinism is preserved across iterations
  - Invalid specifiers raise SpecificationError
"""

import io

import numpy as np
import pytest

from logicloops.compiler.specs import ForEach, FromTo, LoopSpecification, parse_specification
from logicloops.core.reader import read_terms
from logicloops.core.terms import Struct, Var, resolve
from logicloops.errors import SpecificationError
from logicloops.runtime.engine import Engine
from logicloops.runtime.interpreter import ReferenceInterpreter


class TestInterpretedLoops:
    def setup_method(self):
        self.output = io.StringIO()
        self.engine = Engine(output=self.output)

    def test_for_prints_range(self):
        self.engine.query("do(for_(I, 1, 5), writeln(I))")
        assert self.output.getvalue() == "1\n2\n3\n4\n5\n"

    def test_for_descending(self):
        self.engine.query("do(for_(I, 10, 2, -3), writeln(I))")
        assert self.output.getvalue() == "10\n7\n4\n"

    def test_for_expression_low(self):
        self.engine.query("L == 2, do(for_(I, L + 1, 5), writeln(I))")
        assert self.output.getvalue() == "3\n4\n5\n"

    def test_for_empty_range(self):
        assert self.engine.query("do(for_(I, 5, 1), writeln(I))") is not None
        assert self.output.getvalue() == ""

    def test_sum_with_fromto(self):
        answer = self.engine.query(
            "do((foreach(X, [ab, cde, f]), fromto(0, S0, S1, Sum)),"
            " (atom_length(X, N), S1 is S0 + N))"
        )
        assert answer['Sum'] == 6

    def test_iterator_order_does_not_matter(self):
        answer = self.engine.query(
            "do((fromto(0, S0, S1, Sum), foreach(X, [ab, cde, f])),"
            " (atom_length(X, N), S1 is S0 + N))"
        )
        assert answer['Sum'] == 6

    def test_foreach_grows_unbound_list(self):
        answer = self.engine.query("do((for_(I, 5, 1, -1), foreach(X, L)), X == I)")
        assert answer['L'] == [5, 4, 3, 2, 1]

    def test_constant_fill(self):
        answer = self.engine.query("do((for_(_, 1, 5), foreach(X, L)), X == a)")
        assert answer['L'] == ['a'] * 5

    def test_count_binds_total(self):
        answer = self.engine.query("do((count(I, 1, N), foreach(X, [a, b, c])), true)")
        assert answer['N'] == 3

    def test_count_with_bound_high(self):
        answer = self.engine.query("do((count(I, 1, 3), foreach(X, L)), X == I)")
        assert answer['L'] == [1, 2, 3]

    def test_fromto_ground_stop(self):
        self.engine.query("do(fromto(1, I0, I1, 4), (write(I0), I1 is I0 + 1))")
        assert self.output.getvalue() == "123"

    def test_foreacharg(self):
        answer = self.engine.query("do((foreacharg(A, f(x, y)), foreach(B, L)), B == A)")
        assert answer['L'] == ['x', 'y']

    def test_foreacharg_indexed(self):
        answer = self.engine.query(
            "do((foreacharg(A, f(x, y, z), I), fromto(0, S0, S1, S)), S1 is S0 + I)"
        )
        assert answer['S'] == 6

    def test_param_passes_values(self):
        answer = self.engine.query(
            "K == 10, do((foreach(X, [1, 2]), foreach(Y, L), param(K)), Y is X * K)"
        )
        assert answer['L'] == [10, 20]

    def test_mismatched_lengths_fail(self):
        assert self.engine.query("do((foreach(X, [a, b, c]), foreach(Y, [1, 2])), true)") is None
        assert self.engine.query("do((foreach(X, [a, b]), for_(I, 1, 3)), true)") is None

    def test_body_failure_fails_loop(self):
        assert self.engine.query("do(foreach(X, [1, 2, 3]), X < 3)") is None

    def test_body_nondeterminism(self):
        answers = self.engine.query_all(
            "do((foreach(X, [1, 2]), fromto([], A0, A1, Acc)), ((Y in [a, b]), A1 == [Y, *A0]))"
        )
        assert [answer['Acc'] for answer in answers] == [
            ['a', 'a'], ['b', 'a'], ['a', 'b'], ['b', 'b'],
        ]

    def test_nested_loops(self):
        self.engine.query("do(foreach(Row, [[1, 2], [3]]), do(foreach(X, Row), write(X)))")
        assert self.output.getvalue() == "123"

    def test_long_loop(self):
        answer = self.engine.query("do((for_(I, 1, 20000), fromto(0, S0, S1, S)), S1 is S0 + I)")
        assert answer['S'] == 20000 * 20001 // 2

    def test_invalid_specifier(self):
        with pytest.raises(SpecificationError):
            self.engine.query("do(bogus(X), true)")
        with pytest.raises(SpecificationError):
            self.engine.query("do(for_(I, 1, 5, 0), true)")


class TestReferenceInterpreter:
    def setup_method(self):
        self.engine = Engine()
        self.interpreter = ReferenceInterpreter(self.engine)

    def test_solve_yields_solutions(self):
        (spec, body), variables = read_terms("(foreach(X, [1, 2, 3]), fromto(0, S0, S1, S))",
                                             "S1 is S0 + X")
        results = [resolve(variables['S']) for _ in self.interpreter.solve(spec, body)]
        assert results == [6]

    def test_accepts_parsed_specification(self):
        (spec, body), variables = read_terms("(for_(I, 1, 3), foreach(X, L))", "X == I")
        answer = self.interpreter.run(parse_specification(spec), body, variables)
        assert answer['L'] == [1, 2, 3]

    def test_goal_term(self):
        (spec, body), _ = read_terms("foreach(X, L)", "true")
        goal = self.interpreter.goal(spec, body)
        assert goal.name == 'do'
        assert goal.args == (spec, 'true')

    def test_python_data_in_descriptors(self):
        x, s0, s1, total = Var('X'), Var('S0'), Var('S1'), Var('S')
        spec = LoopSpecification((
            ForEach(x, np.array([1, 2, 3])),
            FromTo(np.int64(0), s0, s1, total),
        ))
        answer = self.interpreter.run(spec, Struct('is', s1, s0 + x), {'S': total})
        assert answer == {'S': 6}
