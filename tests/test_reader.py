"""
Tests for the text front-end.

Validates:
  - Variables, atoms, numbers and compound terms
  - Conjunction, disjunction, if-then and negation syntax
  - Lists and partial lists
  - Keyword-escaped functor names (for_ -> for)
  - Shared variable scope across reads
"""

import pytest

from logicloops.core.reader import TermReader, read_clause, read_term, read_terms
from logicloops.core.terms import NIL, Struct, Var, list_items


class TestTermReader:
    def setup_method(self):
        self.reader = TermReader()

    def test_atoms_and_numbers(self):
        assert self.reader.read("abc") == 'abc'
        assert self.reader.read("42") == 42
        assert self.reader.read("-3") == -3
        assert self.reader.read("'Hello'") == 'Hello'
        assert self.reader.read("True") == 'true'

    def test_variables_are_shared_per_reader(self):
        first = self.reader.read("f(X, Y, X)")
        assert first.args[0] is first.args[2]
        second = self.reader.read("g(X)")
        assert second.args[0] is first.args[0]
        assert set(self.reader.variables) == {'X', 'Y'}

    def test_anonymous_variables_are_fresh(self):
        term = self.reader.read("f(_, _)")
        assert term.args[0] is not term.args[1]

    def test_compound_and_keyword_functor(self):
        term = self.reader.read("for_(I, 1, 10, 2)")
        assert term.name == 'for'
        assert term.args[1:] == (1, 10, 2)
        assert self.reader.read("halt()") == 'halt'

    def test_control_constructs(self):
        conjunction = self.reader.read("(a, b, c)")
        assert conjunction == Struct(',', 'a', Struct(',', 'b', 'c'))
        assert self.reader.read("a | b") == Struct(';', 'a', 'b')
        assert self.reader.read("(a >> b) | c") == Struct(';', Struct('->', 'a', 'b'), 'c')
        assert self.reader.read("not a") == Struct('\\+', 'a')

    def test_operators(self):
        term = self.reader.read("X is Y + 2 * Z")
        assert term.name == 'is'
        assert term.args[1].name == '+'
        assert term.args[1].args[1] == Struct('*', 2, self.reader.variables['Z'])
        assert self.reader.read("A == b").name == '='
        assert self.reader.read("A != b").name == '\\='
        assert self.reader.read("A <= 3").name == '=<'
        assert self.reader.read("X in [1]").name == 'member'
        assert self.reader.read("N % 2").name == 'mod'

    def test_lists(self):
        items, tail = list_items(self.reader.read("[1, 2, 3]"))
        assert items == [1, 2, 3]
        assert tail == NIL
        items, tail = list_items(self.reader.read("[H, *T]"))
        assert items == [self.reader.variables['H']]
        assert tail is self.reader.variables['T']
        assert self.reader.read("[]") == NIL

    def test_rejects_unsupported_syntax(self):
        with pytest.raises(ValueError):
            self.reader.read("a < b < c")
        with pytest.raises(ValueError):
            self.reader.read("{1: 2}")
        with pytest.raises(ValueError):
            self.reader.read("f(x=1)")
        with pytest.raises(ValueError):
            self.reader.read("f(")


class TestHelpers:
    def test_read_term_with_variables(self):
        variables = {}
        term = read_term("f(A)", variables)
        assert variables['A'] is term.args[0]

    def test_read_terms_share_scope(self):
        (spec, body), variables = read_terms("foreach(X, Xs)", "writeln(X)")
        assert spec.args[0] is body.args[0]
        assert isinstance(variables['Xs'], Var)

    def test_read_clause(self):
        clause = read_clause("p(X)", "q(X)")
        assert clause.name == ':-'
        assert clause.args[0].args[0] is clause.args[1].args[0]
