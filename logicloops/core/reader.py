"""
Term Reader
===========

A thin text front-end that reads terms written in Python expression
syntax, using the ``ast`` module for parsing.

Mapping
-------
  - Capitalised names (and names starting with ``_``) are variables; the
    same name denotes the same variable within one reader. ``_`` alone is
    a fresh anonymous variable each time.
  - Lower-case names and string literals are atoms; ``True``/``False``
    become the atoms ``true``/``false``.
  - ``f(a, B)`` is a compound term. A trailing underscore after a Python
    keyword is dropped, so ``for_(I, 1, 3)`` reads as ``for(I, 1, 3)``.
  - A tuple ``(G1, G2, ...)`` is a conjunction.
  - ``[a, b]`` is a list and ``[H, *T]`` a list with tail ``T``.
  - ``A | B`` is a disjunction, ``C >> T`` an if-then, ``not G`` negation.
  - ``X is E`` is arithmetic evaluation, ``A == B`` unification,
    ``A != B`` "does not unify", ``<``, ``<=``, ``>``, ``>=`` arithmetic
    comparison and ``X in L`` list membership.
  - ``+ - * / // % **`` build arithmetic terms (``%`` is ``mod``).

Operator precedence is Python's, so a comparison inside ``|`` or ``>>``
needs parentheses: ``(X == a) | (X == b)``.

Example:
    >>> reader = TermReader()
    >>> spec = reader.read("foreach(X, Xs), fromto(0, S0, S1, Sum)")
    >>> body = reader.read("S1 is S0 + X")
    >>> reader.variables['Sum']
    Sum
"""

import ast
import keyword
from typing import Any, Dict, List, Optional, Tuple

from logicloops.core.terms import Struct, Var, conj, make_list


_BINARY_OPERATORS = {
    ast.Add: '+',
    ast.Sub: '-',
    ast.Mult: '*',
    ast.Div: '/',
    ast.FloorDiv: '//',
    ast.Mod: 'mod',
    ast.Pow: '**',
    ast.BitOr: ';',
    ast.BitAnd: ',',
    ast.RShift: '->',
}

_COMPARISON_OPERATORS = {
    ast.Is: 'is',
    ast.Eq: '=',
    ast.NotEq: '\\=',
    ast.Lt: '<',
    ast.LtE: '=<',
    ast.Gt: '>',
    ast.GtE: '>=',
    ast.In: 'member',
}


def _functor_name(name: str) -> str:
    if name.endswith("_") and keyword.iskeyword(name[:-1]):
        return name[:-1]
    return name


class TermReader(ast.NodeVisitor):
    """Reads terms from text; variables are shared across ``read`` calls."""

    def __init__(self, variables: Optional[Dict[str, Var]] = None):
        self.variables: Dict[str, Var] = {} if variables is None else variables

    def read(self, text: str) -> Any:
        try:
            tree = ast.parse(text.strip(), mode='eval')
        except SyntaxError as exc:
            raise ValueError(f"cannot read term from {text!r}: {exc.msg}") from exc
        return self.visit(tree.body)

    def generic_visit(self, node: ast.AST):
        raise ValueError(f"unsupported syntax in term: {type(node).__name__}")

    def _variable(self, name: str) -> Var:
        if name == '_':
            return Var('_')
        var = self.variables.get(name)
        if var is None:
            var = self.variables[name] = Var(name)
        return var

    def visit_Name(self, node: ast.Name) -> Any:
        name = node.id
        if name[0].isupper() or name[0] == '_':
            return self._variable(name)
        return _functor_name(name)

    def visit_Constant(self, node: ast.Constant) -> Any:
        value = node.value
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, (int, float, str)):
            return value
        raise ValueError(f"unsupported constant in term: {value!r}")

    def visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or not node.func.id[0].islower():
            raise ValueError("a compound term needs a lower-case functor name")
        name = _functor_name(node.func.id)
        if node.keywords:
            raise ValueError(f"keyword arguments are not terms: {name}")
        if not node.args:
            return name
        return Struct(name, *[self.visit(arg) for arg in node.args])

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return conj(*[self.visit(element) for element in node.elts])

    def visit_List(self, node: ast.List) -> Any:
        elements = list(node.elts)
        tail = '[]'
        if elements and isinstance(elements[-1], ast.Starred):
            tail = self.visit(elements.pop().value)
        return make_list([self.visit(element) for element in elements], tail)

    def visit_Starred(self, node: ast.Starred):
        raise ValueError("'*tail' is only allowed as the last list element")

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        name = _BINARY_OPERATORS.get(type(node.op))
        if name is None:
            raise ValueError(f"unsupported operator: {type(node.op).__name__}")
        return Struct(name, self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.USub):
            if isinstance(operand, (int, float)) and not isinstance(operand, bool):
                return -operand
            return Struct('-', operand)
        if isinstance(node.op, ast.UAdd):
            return operand
        if isinstance(node.op, ast.Not):
            return Struct('\\+', operand)
        raise ValueError(f"unsupported operator: {type(node.op).__name__}")

    def visit_Compare(self, node: ast.Compare) -> Any:
        if len(node.ops) != 1:
            raise ValueError("chained comparisons are not terms")
        name = _COMPARISON_OPERATORS.get(type(node.ops[0]))
        if name is None:
            raise ValueError(f"unsupported comparison: {type(node.ops[0]).__name__}")
        return Struct(name, self.visit(node.left), self.visit(node.comparators[0]))


def read_term(text: str, variables: Optional[Dict[str, Var]] = None) -> Any:
    """Read a single term; ``variables`` maps names to the variables used."""
    return TermReader(variables).read(text)


def read_terms(*texts: str) -> Tuple[List[Any], Dict[str, Var]]:
    """Read several terms that share one variable scope."""
    reader = TermReader()
    return [reader.read(text) for text in texts], reader.variables


def read_clause(head: str, body: str = 'true',
                variables: Optional[Dict[str, Var]] = None) -> Struct:
    """Read ``head :- body`` as a clause term."""
    reader = TermReader(variables)
    return Struct(':-', reader.read(head), reader.read(body))
