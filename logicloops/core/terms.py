"""
Terms
=====

The term model shared by the loop compiler and its runtime.

Representation
--------------
  - Atoms are plain Python ``str`` objects (``'[]'`` is the empty list).
  - Numbers are ``int`` / ``float`` (``bool`` is not a number).
  - ``Var`` is a logic variable. Variables compare by identity and are
    bound through a ``Trail`` so bindings can be undone on backtracking.
  - ``Struct`` is a compound term ``name(arg1, ..., argN)``.
  - Lists are cons cells ``'.'(Head, Tail)`` ending in ``'[]'``. A list whose
    tail is an unbound variable is a *partial list*.

Walkers over terms never recurse along a list spine, so lists of any
length can be resolved, copied and hashed without hitting the recursion
limit.
"""

import itertools
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np


NIL = '[]'
CONS = '.'

# Infix operators used when printing terms.
INFIX_OPERATORS = frozenset({
    ',', ';', '->', '=', '\\=', '==', '\\==', 'is', '=:=', '=\\=',
    '<', '>', '=<', '>=', '+', '-', '*', '/', '//', 'mod', 'rem', '**',
    ':-', 'do',
})


class _ArithmeticSyntax:
    """Operator overloads that build arithmetic terms instead of computing."""

    __slots__ = ()

    def __add__(self, other):
        return Struct('+', self, other)

    def __radd__(self, other):
        return Struct('+', other, self)

    def __sub__(self, other):
        return Struct('-', self, other)

    def __rsub__(self, other):
        return Struct('-', other, self)

    def __mul__(self, other):
        return Struct('*', self, other)

    def __rmul__(self, other):
        return Struct('*', other, self)

    def __truediv__(self, other):
        return Struct('/', self, other)

    def __rtruediv__(self, other):
        return Struct('/', other, self)

    def __floordiv__(self, other):
        return Struct('//', self, other)

    def __rfloordiv__(self, other):
        return Struct('//', other, self)

    def __mod__(self, other):
        return Struct('mod', self, other)

    def __rmod__(self, other):
        return Struct('mod', other, self)

    def __pow__(self, other):
        return Struct('**', self, other)

    def __neg__(self):
        return Struct('-', self)


class Var(_ArithmeticSyntax):
    """A logic variable. ``ref`` is ``None`` while the variable is unbound."""

    __slots__ = ('name', 'ref', 'serial')

    _serials = itertools.count()

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self.ref = None
        self.serial = next(Var._serials)

    def __repr__(self):
        return self.name or f"_G{self.serial}"


class Struct(_ArithmeticSyntax):
    """A compound term ``name(*args)``."""

    __slots__ = ('name', 'args')

    def __init__(self, name: str, *args: Any):
        self.name = name
        self.args = tuple(args)

    @property
    def arity(self) -> int:
        return len(self.args)

    @property
    def indicator(self) -> str:
        return f"{self.name}/{len(self.args)}"

    def __eq__(self, other):
        if not isinstance(other, Struct):
            return NotImplemented
        return self.name == other.name and self.args == other.args

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash((self.name, self.args))

    def __repr__(self):
        return format_term(self)


class Trail:
    """Records variable bindings so they can be undone back to a mark."""

    __slots__ = ('_bound',)

    def __init__(self):
        self._bound: List[Var] = []

    def __len__(self):
        return len(self._bound)

    def mark(self) -> int:
        return len(self._bound)

    def bind(self, var: Var, value: Any):
        var.ref = value
        self._bound.append(var)

    def undo(self, mark: int):
        bound = self._bound
        while len(bound) > mark:
            bound.pop().ref = None


# ---------- Classification ----------

def is_atom(term: Any) -> bool:
    return isinstance(term, str)


def is_number(term: Any) -> bool:
    return isinstance(term, (int, float)) and not isinstance(term, bool)


def is_callable(term: Any) -> bool:
    return isinstance(term, (str, Struct))


def is_cons(term: Any) -> bool:
    return isinstance(term, Struct) and term.name == CONS and len(term.args) == 2


# ---------- Dereferencing ----------

def deref(term: Any) -> Any:
    """Follow variable bindings until reaching an unbound variable or a value."""
    while isinstance(term, Var) and term.ref is not None:
        term = term.ref
    return term


def resolve(term: Any) -> Any:
    """Return a copy of ``term`` with every bound variable replaced by its value."""
    term = deref(term)
    if not isinstance(term, Struct):
        return term
    if is_cons(term):
        items = []
        while is_cons(term):
            items.append(resolve(term.args[0]))
            term = deref(term.args[1])
        return make_list(items, resolve(term))
    return Struct(term.name, *[resolve(arg) for arg in term.args])


def _subterms(term: Any):
    """Depth-first, left-to-right walk over dereferenced subterms."""
    stack = [term]
    while stack:
        current = deref(stack.pop())
        yield current
        if isinstance(current, Struct):
            stack.extend(reversed(current.args))


def term_variables(term: Any) -> List[Var]:
    """Unbound variables of ``term`` in order of first occurrence."""
    seen = set()
    found = []
    for sub in _subterms(term):
        if isinstance(sub, Var) and sub not in seen:
            seen.add(sub)
            found.append(sub)
    return found


def is_ground(term: Any) -> bool:
    return not any(isinstance(sub, Var) for sub in _subterms(term))


# ---------- Unification ----------

def unify(left: Any, right: Any, trail: Trail) -> bool:
    """
    Unify two terms, recording bindings on ``trail``.

    On failure the bindings made so far stay on the trail; callers undo
    them back to the mark they took before unifying.
    """
    stack = [(left, right)]
    while stack:
        a, b = stack.pop()
        a = deref(a)
        b = deref(b)
        if a is b:
            continue
        if isinstance(a, Var):
            trail.bind(a, b)
        elif isinstance(b, Var):
            trail.bind(b, a)
        elif isinstance(a, Struct):
            if (not isinstance(b, Struct) or a.name != b.name
                    or len(a.args) != len(b.args)):
                return False
            stack.extend(zip(a.args, b.args))
        elif isinstance(b, Struct):
            return False
        elif type(a) is not type(b) or a != b:
            return False
    return True


def identical(left: Any, right: Any) -> bool:
    """Structural identity (``==/2``): no bindings are made."""
    stack = [(left, right)]
    while stack:
        a, b = stack.pop()
        a = deref(a)
        b = deref(b)
        if a is b:
            continue
        if isinstance(a, Struct) and isinstance(b, Struct):
            if a.name != b.name or len(a.args) != len(b.args):
                return False
            stack.extend(zip(a.args, b.args))
        elif isinstance(a, (Var, Struct)) or isinstance(b, (Var, Struct)):
            return False
        elif type(a) is not type(b) or a != b:
            return False
    return True


# ---------- Copying ----------

def rename(term: Any, mapping: Dict[Var, Var]) -> Any:
    """Copy ``term`` replacing each unbound variable by a fresh one via ``mapping``."""
    term = deref(term)
    if isinstance(term, Var):
        fresh = mapping.get(term)
        if fresh is None:
            fresh = mapping[term] = Var()
        return fresh
    if not isinstance(term, Struct):
        return term
    if is_cons(term):
        items = []
        while is_cons(term):
            items.append(rename(term.args[0], mapping))
            term = deref(term.args[1])
        return make_list(items, rename(term, mapping))
    return Struct(term.name, *[rename(arg, mapping) for arg in term.args])


def copy_term(term: Any) -> Any:
    return rename(term, {})


# ---------- Lists and conjunctions ----------

def make_list(items: Iterable[Any], tail: Any = NIL) -> Any:
    result = tail
    for item in reversed(list(items)):
        result = Struct(CONS, item, result)
    return result


def list_items(term: Any) -> Tuple[List[Any], Any]:
    """Split a (possibly partial) list into its elements and its dereferenced tail."""
    items = []
    term = deref(term)
    while is_cons(term):
        items.append(term.args[0])
        term = deref(term.args[1])
    return items, term


def is_proper_list(term: Any) -> bool:
    return list_items(term)[1] == NIL


def conj_list(goal: Any) -> List[Any]:
    """Flatten a ``','/2`` conjunction, dropping ``true``."""
    goals = []
    stack = [goal]
    while stack:
        current = deref(stack.pop())
        if isinstance(current, Struct) and current.name == ',' and len(current.args) == 2:
            stack.append(current.args[1])
            stack.append(current.args[0])
        elif current != 'true':
            goals.append(current)
    return goals


def conj(*goals: Any) -> Any:
    """Build a right-nested conjunction; ``true`` when nothing is left."""
    flat = []
    for goal in goals:
        flat.extend(conj_list(goal))
    if not flat:
        return 'true'
    result = flat[-1]
    for goal in reversed(flat[:-1]):
        result = Struct(',', goal, result)
    return result


# ---------- Variant keys ----------

def variant_key(term: Any) -> str:
    """
    Canonical text of ``term`` in which variables are numbered by first
    occurrence, so two terms get the same key iff they are variants.
    """
    numbering: Dict[Var, int] = {}
    parts = []
    stack: List[Tuple[bool, Any]] = [(False, term)]
    while stack:
        literal, item = stack.pop()
        if literal:
            parts.append(item)
            continue
        item = deref(item)
        if isinstance(item, Var):
            index = numbering.setdefault(item, len(numbering))
            parts.append(f"_{index}")
        elif isinstance(item, Struct):
            parts.append(f"{item.name!r}/{len(item.args)}(")
            stack.append((True, ")"))
            for arg in reversed(item.args):
                stack.append((True, ","))
                stack.append((False, arg))
        else:
            parts.append(f"{type(item).__name__}:{item!r}")
    return "".join(parts)


# ---------- Python conversion ----------

def to_term(value: Any) -> Any:
    """Convert Python data (lists, tuples, numpy arrays, scalars) to a term."""
    if isinstance(value, (Var, Struct, str)):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, np.generic):
        return to_term(value.item())
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, np.ndarray):
        return to_term(value.tolist())
    if isinstance(value, (list, tuple)):
        return make_list([to_term(item) for item in value])
    raise TypeError(f"cannot convert {type(value).__name__} to a term")


def from_term(term: Any) -> Any:
    """Resolve ``term``; proper lists become Python lists, everything else stays a term."""
    term = resolve(term)
    items, tail = list_items(term)
    if tail == NIL and (items or term == NIL):
        return [from_term(item) for item in items]
    return term


# ---------- Printing ----------

def _format_atom(atom: str) -> str:
    if atom in ('[]', '!', ';', ',', '{}') or atom in INFIX_OPERATORS:
        return atom
    if atom and atom[0].islower() and atom.replace('_', 'a').isalnum():
        return atom
    return "'" + atom.replace("'", "\\'") + "'"


def format_term(term: Any) -> str:
    term = deref(term)
    if isinstance(term, Var):
        return repr(term)
    if isinstance(term, str):
        return _format_atom(term)
    if not isinstance(term, Struct):
        return repr(term)
    if is_cons(term):
        items, tail = list_items(term)
        body = ", ".join(format_term(item) for item in items)
        if tail == NIL:
            return f"[{body}]"
        return f"[{body}|{format_term(tail)}]"
    if term.name in INFIX_OPERATORS and len(term.args) == 2:
        left, right = (_format_operand(arg) for arg in term.args)
        if term.name == ',':
            return f"({left}, {right})"
        return f"{left} {term.name} {right}"
    if term.name == '-' and len(term.args) == 1:
        return f"-{_format_operand(term.args[0])}"
    args = ", ".join(format_term(arg) for arg in term.args)
    return f"{_format_atom(term.name)}({args})"


def _format_operand(term: Any) -> str:
    text = format_term(term)
    term = deref(term)
    if (isinstance(term, Struct) and term.name in INFIX_OPERATORS
            and len(term.args) == 2 and term.name != ','):
        return f"({text})"
    return text
