"""
Builtin Predicates
==================

Builtins are plain Python functions called with the engine followed by the
goal's arguments. Three kinds exist:

  - DETERMINISTIC: returns ``True`` (succeed once) or ``False`` (fail).
  - NONDETERMINISTIC: a generator; each ``yield`` is one solution. The
    engine undoes the bindings of the previous solution before resuming.
  - CONTROL: returns a goal term that is run in place of the call.

Usage:
    >>> registry = DEFAULT_BUILTINS.copy()
    >>> @registry.deterministic('double', 2)
    ... def double(engine, x, y):
    ...     return engine.unify(y, evaluate(x) * 2)
"""

from enum import Enum, auto
from typing import Any, Callable, Dict, Optional, Tuple

from logicloops.core.arith import compare, evaluate
from logicloops.core.terms import (
    NIL, Struct, Var, conj, copy_term, deref, format_term, identical,
    is_atom, is_callable, is_ground, is_number, list_items, make_list,
    resolve, unify,
)
from logicloops.errors import InstantiationError


class BuiltinKind(Enum):
    DETERMINISTIC = auto()
    NONDETERMINISTIC = auto()
    CONTROL = auto()


class BuiltinRegistry:
    """Maps ``(name, arity)`` to ``(kind, function)``."""

    def __init__(self, entries: Optional[Dict[Tuple[str, int], Tuple[BuiltinKind, Callable]]] = None):
        self._entries: Dict[Tuple[str, int], Tuple[BuiltinKind, Callable]] = dict(entries or {})

    def register(self, name: str, arity: int, kind: BuiltinKind) -> Callable:
        def decorator(func: Callable) -> Callable:
            self._entries[(name, arity)] = (kind, func)
            return func
        return decorator

    def deterministic(self, name: str, arity: int) -> Callable:
        return self.register(name, arity, BuiltinKind.DETERMINISTIC)

    def nondeterministic(self, name: str, arity: int) -> Callable:
        return self.register(name, arity, BuiltinKind.NONDETERMINISTIC)

    def control(self, name: str, arity: int) -> Callable:
        return self.register(name, arity, BuiltinKind.CONTROL)

    def get(self, name: str, arity: int) -> Optional[Tuple[BuiltinKind, Callable]]:
        return self._entries.get((name, arity))

    def copy(self) -> 'BuiltinRegistry':
        return BuiltinRegistry(self._entries)

    def merged(self, other: 'BuiltinRegistry') -> 'BuiltinRegistry':
        registry = self.copy()
        registry._entries.update(other._entries)
        return registry

    def __contains__(self, indicator: Tuple[str, int]) -> bool:
        return indicator in self._entries

    def __len__(self) -> int:
        return len(self._entries)


DEFAULT_BUILTINS = BuiltinRegistry()
_det = DEFAULT_BUILTINS.deterministic
_nondet = DEFAULT_BUILTINS.nondeterministic
_control = DEFAULT_BUILTINS.control


def _integer(value: Any, context: str) -> int:
    value = deref(value)
    if isinstance(value, Var):
        raise InstantiationError(value, context)
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{context}: expected integer, got {format_term(value)}")
    return value


# ---------- Unification and comparison ----------

@_det('=', 2)
def _unify(engine, left, right):
    return unify(left, right, engine.trail)


@_det('\\=', 2)
def _not_unifiable(engine, left, right):
    mark = engine.trail.mark()
    unifiable = unify(left, right, engine.trail)
    engine.trail.undo(mark)
    return not unifiable


@_det('==', 2)
def _identical(engine, left, right):
    return identical(left, right)


@_det('\\==', 2)
def _not_identical(engine, left, right):
    return not identical(left, right)


# ---------- Arithmetic ----------

@_det('is', 2)
def _is(engine, result, expression):
    return unify(result, evaluate(expression), engine.trail)


def _comparison(op: str):
    def compare_builtin(engine, left, right):
        return compare(op, left, right)
    compare_builtin.__name__ = f"compare_{op}"
    return compare_builtin


for _op in ('<', '>', '=<', '>=', '=:=', '=\\='):
    _det(_op, 2)(_comparison(_op))


# ---------- Type checks ----------

_TYPE_CHECKS = {
    'var': lambda t: isinstance(t, Var),
    'nonvar': lambda t: not isinstance(t, Var),
    'number': is_number,
    'integer': lambda t: isinstance(t, int) and not isinstance(t, bool),
    'float': lambda t: isinstance(t, float),
    'atom': is_atom,
    'atomic': lambda t: is_atom(t) or is_number(t),
    'compound': lambda t: isinstance(t, Struct),
    'callable': is_callable,
    'is_list': lambda t: list_items(t)[1] == NIL,
}

for _name, _check in _TYPE_CHECKS.items():
    _det(_name, 1)(lambda engine, term, _check=_check: _check(deref(term)))

_det('ground', 1)(lambda engine, term: is_ground(term))


# ---------- Term construction and inspection ----------

@_det('functor', 3)
def _functor(engine, term, name, arity):
    term = deref(term)
    if isinstance(term, Var):
        count = _integer(arity, 'functor/3')
        name = deref(name)
        if isinstance(name, Var):
            raise InstantiationError(name, 'functor/3')
        if count == 0:
            return unify(term, name, engine.trail)
        fresh = Struct(name, *[Var() for _ in range(count)])
        return unify(term, fresh, engine.trail)
    if isinstance(term, Struct):
        return (unify(name, term.name, engine.trail)
                and unify(arity, len(term.args), engine.trail))
    return unify(name, term, engine.trail) and unify(arity, 0, engine.trail)


@_det('arg', 3)
def _arg(engine, index, term, argument):
    position = _integer(index, 'arg/3')
    term = deref(term)
    if isinstance(term, Var):
        raise InstantiationError(term, 'arg/3')
    if not isinstance(term, Struct):
        raise TypeError(f"arg/3: expected compound, got {format_term(term)}")
    if not 1 <= position <= len(term.args):
        return False
    return unify(argument, term.args[position - 1], engine.trail)


@_det('copy_term', 2)
def _copy_term(engine, original, copy):
    return unify(copy, copy_term(original), engine.trail)


@_det('length', 2)
def _length(engine, lst, length):
    items, tail = list_items(lst)
    if tail == NIL:
        return unify(length, len(items), engine.trail)
    if not isinstance(tail, Var):
        return False
    count = _integer(length, 'length/2') - len(items)
    if count < 0:
        return False
    return unify(tail, make_list([Var() for _ in range(count)]), engine.trail)


@_det('atom_length', 2)
def _atom_length(engine, atom, length):
    atom = deref(atom)
    if isinstance(atom, Var):
        raise InstantiationError(atom, 'atom_length/2')
    if isinstance(atom, Struct):
        raise TypeError(f"atom_length/2: expected atomic, got {format_term(atom)}")
    return unify(length, len(str(atom)), engine.trail)


@_det('nth1', 3)
def _nth1(engine, index, lst, element):
    position = _integer(index, 'nth1/3')
    items, _ = list_items(lst)
    if not 1 <= position <= len(items):
        return False
    return unify(element, items[position - 1], engine.trail)


# ---------- Non-deterministic ----------

@_nondet('member', 2)
def _member(engine, element, lst):
    """Members of the list's known prefix; an open tail is not extended."""
    items, _ = list_items(lst)
    mark = engine.trail.mark()
    for item in items:
        if unify(element, item, engine.trail):
            yield
        engine.trail.undo(mark)


@_nondet('between', 3)
def _between(engine, low, high, value):
    start = _integer(low, 'between/3')
    end = deref(high)
    if end not in ('inf', 'infinite'):
        end = _integer(end, 'between/3')
    current = deref(value)
    if not isinstance(current, Var):
        current = _integer(current, 'between/3')
        if start <= current and (isinstance(end, str) or current <= end):
            yield
        return
    index = start
    while isinstance(end, str) or index <= end:
        if unify(value, index, engine.trail):
            yield
        index += 1


# ---------- Meta-calls and all-solutions ----------

@_det('\\+', 1)
def _not_provable(engine, goal):
    return not engine.succeeds(goal)


_det('not', 1)(_not_provable)


def _call_n(engine, goal, *extra):
    goal = deref(goal)
    if isinstance(goal, Var):
        raise InstantiationError(goal, 'call/N')
    if not extra:
        return goal
    if isinstance(goal, Struct):
        return Struct(goal.name, *(goal.args + extra))
    if isinstance(goal, str):
        return Struct(goal, *extra)
    raise TypeError(f"call/N: not callable: {format_term(goal)}")


for _arity in range(1, 9):
    _control('call', _arity)(_call_n)


@_det('findall', 3)
def _findall(engine, template, goal, bag):
    results = [copy_term(resolve(template)) for _ in engine.solve(goal)]
    return unify(bag, make_list(results), engine.trail)


@_control('forall', 2)
def _forall(engine, condition, action):
    return Struct('\\+', conj(condition, Struct('\\+', action)))


# ---------- Output ----------

@_det('write', 1)
def _write(engine, term):
    engine.write(_text(term))
    return True


@_det('writeln', 1)
def _writeln(engine, term):
    engine.write(_text(term) + "\n")
    return True


_det('nl', 0)(lambda engine: engine.write("\n") or True)


def _text(term: Any) -> str:
    term = deref(term)
    if isinstance(term, str):
        return term
    return format_term(term)
