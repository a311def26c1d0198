"""
Arithmetic evaluation for ``is/2`` and the comparison builtins.

Integer results stay integers wherever the operation allows it
(``/`` on two integers that divide exactly, ``//``, ``mod``, ``rem``).
"""

import math
import operator
from typing import Any, Callable, Dict

import numpy as np

from logicloops.core.terms import Struct, Var, deref, format_term, is_number
from logicloops.errors import InstantiationError


def _divide(a, b):
    if isinstance(a, int) and isinstance(b, int) and b != 0 and a % b == 0:
        return a // b
    return a / b


def _int_divide(a, b):
    """Integer division truncating toward zero."""
    _require_ints('//', a, b)
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def _mod(a, b):
    _require_ints('mod', a, b)
    return a % b


def _rem(a, b):
    _require_ints('rem', a, b)
    return a - b * _int_divide(a, b)


def _sign(a):
    if isinstance(a, float):
        return math.copysign(1.0, a) if a else 0.0
    return (a > 0) - (a < 0)


def _require_ints(name, *values):
    for value in values:
        if not isinstance(value, int):
            raise TypeError(f"{name}: expected integer, got {value!r}")


BINARY_OPERATIONS: Dict[str, Callable[[Any, Any], Any]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': _divide,
    '//': _int_divide,
    'mod': _mod,
    'rem': _rem,
    'min': min,
    'max': max,
    '**': operator.pow,
    '^': operator.pow,
}

UNARY_OPERATIONS: Dict[str, Callable[[Any], Any]] = {
    '-': operator.neg,
    '+': operator.pos,
    'abs': abs,
    'sign': _sign,
    'float': float,
    'integer': lambda a: int(round(a)),
    'truncate': math.trunc,
    'floor': math.floor,
    'ceiling': math.ceil,
    'round': lambda a: int(round(a)),
    'sqrt': math.sqrt,
}

CONSTANTS: Dict[str, Any] = {
    'pi': math.pi,
    'e': math.e,
    'inf': math.inf,
}


def evaluate(expression: Any) -> Any:
    """Evaluate an arithmetic term to a Python number."""
    term = deref(expression)
    if is_number(term):
        return term
    if isinstance(term, np.generic):
        return term.item()
    if isinstance(term, Var):
        raise InstantiationError(term, "is/2")
    if isinstance(term, str):
        if term in CONSTANTS:
            return CONSTANTS[term]
        raise TypeError(f"not an arithmetic value: {format_term(term)}")
    if isinstance(term, Struct):
        if len(term.args) == 2 and term.name in BINARY_OPERATIONS:
            left = evaluate(term.args[0])
            right = evaluate(term.args[1])
            if right == 0 and term.name in ('/', '//', 'mod', 'rem'):
                raise ZeroDivisionError(f"{format_term(term)}: division by zero")
            return BINARY_OPERATIONS[term.name](left, right)
        if len(term.args) == 1 and term.name in UNARY_OPERATIONS:
            return UNARY_OPERATIONS[term.name](evaluate(term.args[0]))
        raise TypeError(f"not an evaluable function: {term.indicator}")
    raise TypeError(f"not an arithmetic value: {term!r}")


def compare(op: str, left: Any, right: Any) -> bool:
    """Arithmetic comparison as performed by ``<``, ``=:=`` and friends."""
    return COMPARISONS[op](evaluate(left), evaluate(right))


COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    '<': operator.lt,
    '>': operator.gt,
    '=<': operator.le,
    '>=': operator.ge,
    '=:=': operator.eq,
    '=\\=': operator.ne,
}
