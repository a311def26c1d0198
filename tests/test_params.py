"""
Tests for loop parameter analysis.

Validates:
  - Shared variables are those a loop has in common with the rest of its clause
  - Declared params are collected from param/N conjuncts
  - The consistency check: equal sets or no declaration are consistent
  - Warning text lists undeclared and unshared variables
"""

import pytest

from logicloops.analysis.params import (
    ParameterDeclarationWarning, check_params, declared_params, shared_variables,
)
from logicloops.core.reader import read_clause, read_term
from logicloops.core.terms import Struct, Var
from logicloops.errors import InstantiationError
from logicloops.utils.helpers import format_name_list


class TestSharedVariables:
    def test_variables_shared_with_head_and_siblings(self):
        variables = {}
        clause = read_clause(
            "p(L, Total, Extra)",
            "(do((foreach(X, L), fromto(0, S0, S1, Total)), S1 is S0 + X + K), K == Extra)",
            variables,
        )
        loop = clause.args[1].args[0]
        shared = shared_variables(loop, clause)
        assert [var.name for var in shared] == ['L', 'Total', 'K']

    def test_nothing_shared(self):
        clause = read_clause("p", "do(foreach(X, [1, 2]), writeln(X))")
        loop = clause.args[1]
        assert shared_variables(loop, clause) == []

    def test_loop_as_whole_context(self):
        loop = read_term("do(foreach(X, L), true)")
        assert shared_variables(loop, loop) == []


class TestDeclaredParams:
    def test_collects_in_order(self):
        spec = read_term("(param(A), foreach(X, L), param(B, C))")
        assert [var.name for var in declared_params(spec)] == ['A', 'B', 'C']

    def test_no_params(self):
        assert declared_params(read_term("foreach(X, L)")) == []

    def test_unbound_conjunct(self):
        with pytest.raises(InstantiationError):
            declared_params(Struct(',', read_term("foreach(X, L)"), Var('S')))


class TestCheckParams:
    def setup_method(self):
        self.a, self.b, self.c = Var('A'), Var('B'), Var('C')

    def test_equal_sets_are_consistent(self):
        check = check_params([self.a, self.b], [self.b, self.a])
        assert check.consistent
        assert check.not_declared == [] and check.not_shared == []

    def test_missing_declaration_is_consistent(self):
        assert check_params([self.a, self.b], []).consistent

    def test_duplicates_are_ignored(self):
        assert check_params([self.a], [self.a, self.a]).consistent

    def test_inconsistent_reports_both_sides(self):
        check = check_params([self.a, self.b], [self.b, self.c])
        assert not check.consistent
        assert check.not_declared == [self.a]
        assert check.not_shared == [self.c]

    def test_declared_but_nothing_shared(self):
        check = check_params([], [self.a])
        assert not check.consistent
        assert check.not_shared == [self.a]

    def test_warning_text(self):
        warning = check_params([self.a, self.b, self.c], [Var('D')]).warning()
        assert isinstance(warning, UserWarning)
        text = str(warning)
        assert text.splitlines()[0] == "do/2: inconsistent parameter declaration"
        assert "\tShared but not declared: A, B and C" in text
        assert "\tDeclared but not shared: D" in text

    def test_warning_omits_empty_side(self):
        warning = ParameterDeclarationWarning([self.a], [])
        assert "Declared but not shared" not in str(warning)


class TestNameList:
    def test_formats(self):
        assert format_name_list([]) == ""
        assert format_name_list(['A']) == "A"
        assert format_name_list(['A', 'B']) == "A and B"
        assert format_name_list(['A', 'B', 'C']) == "A, B and C"
