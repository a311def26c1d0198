"""
Iterator Descriptors
====================

The tagged-variant model of a loop specification ``Spec`` in
``Spec do Body``. A specification is a conjunction of iterator
descriptors; parsing is purely shape-based (name and arity).

Descriptor          Surface syntax
------------------  -------------------------------
ForEach             foreach(Elem, List)
ForEachArg          foreacharg(Arg, Compound)
ForEachArgIndexed   foreacharg(Arg, Compound, Index)
For                 for(I, Low, High) / for(I, Low, High, Step)
Count               count(I, Low, High)
FromTo              fromto(From, In, Out, To)
Param               param(V1, ..., Vn)
"""

from dataclasses import dataclass, fields
from typing import Any, Iterator, List, Tuple, Union

from logicloops.core.terms import Struct, Var, deref, to_term
from logicloops.errors import SpecificationError


class _Descriptor:
    """
    Base of the descriptors: every field is converted with ``to_term`` on
    construction, so Python lists and tuples become logic lists and numpy
    scalars and arrays become plain numbers and lists. Terms pass unchanged.
    """

    def __post_init__(self):
        for spec_field in fields(self):
            object.__setattr__(self, spec_field.name, to_term(getattr(self, spec_field.name)))


@dataclass(frozen=True)
class ForEach(_Descriptor):
    """
    Iterate over a list; grows the list when it is unbound or partial.
    ``collection`` may be a logic list, a Python list or tuple, or a numpy array.
    """
    element: Any
    collection: Any

    def to_term(self) -> Struct:
        return Struct('foreach', self.element, self.collection)


@dataclass(frozen=True)
class ForEachArg(_Descriptor):
    """Iterate over the arguments of a compound term (a ``Struct``)."""
    element: Any
    compound: Any

    def to_term(self) -> Struct:
        return Struct('foreacharg', self.element, self.compound)


@dataclass(frozen=True)
class ForEachArgIndexed(_Descriptor):
    """As ``ForEachArg``, also binding the 1-based argument position."""
    element: Any
    compound: Any
    index: Any

    def to_term(self) -> Struct:
        return Struct('foreacharg', self.element, self.compound, self.index)


@dataclass(frozen=True)
class For(_Descriptor):
    """
    Numeric range ``low..high`` with an integer step. Bounds and step may
    be Python or numpy integers; bounds may also be variables or
    arithmetic terms evaluated at run time.
    """
    index: Any
    low: Any
    high: Any
    step: Any = 1

    def to_term(self) -> Struct:
        return Struct('for', self.index, self.low, self.high, self.step)


@dataclass(frozen=True)
class Count(_Descriptor):
    """
    Counts up from ``low``; an unbound ``high`` receives the final count.
    Integer bounds may be Python or numpy integers.
    """
    index: Any
    low: Any
    high: Any

    def to_term(self) -> Struct:
        return Struct('count', self.index, self.low, self.high)


@dataclass(frozen=True)
class FromTo(_Descriptor):
    """
    General accumulator: ``current`` flows into the body, ``following`` out.
    ``start`` and ``stop`` accept any term or Python data ``to_term`` converts.
    """
    start: Any
    current: Any
    following: Any
    stop: Any

    def to_term(self) -> Struct:
        return Struct('fromto', self.start, self.current, self.following, self.stop)


@dataclass(frozen=True)
class Param:
    """
    Values passed unchanged through every iteration. Each slot is converted
    with ``to_term``; the slots themselves stay a tuple.
    """
    slots: Tuple[Any, ...]

    def __post_init__(self):
        object.__setattr__(self, 'slots', tuple(to_term(slot) for slot in self.slots))

    def to_term(self) -> Struct:
        return Struct('param', *self.slots)


IteratorSpec = Union[ForEach, ForEachArg, ForEachArgIndexed, For, Count, FromTo, Param]

_SHAPES = {
    ('foreach', 2): ForEach,
    ('foreacharg', 2): ForEachArg,
    ('foreacharg', 3): ForEachArgIndexed,
    ('for', 3): For,
    ('for', 4): For,
    ('count', 3): Count,
    ('fromto', 4): FromTo,
}


@dataclass(frozen=True)
class LoopSpecification:
    """Ordered, non-empty conjunction of iterator descriptors."""
    iterators: Tuple[IteratorSpec, ...]

    def __post_init__(self):
        if not self.iterators:
            raise SpecificationError('true', "a loop needs at least one iterator")

    def __iter__(self) -> Iterator[IteratorSpec]:
        return iter(self.iterators)

    def __len__(self) -> int:
        return len(self.iterators)

    @property
    def params(self) -> List[Any]:
        """Slots declared through ``param/N`` conjuncts, in order."""
        slots: List[Any] = []
        for iterator in self.iterators:
            if isinstance(iterator, Param):
                slots.extend(iterator.slots)
        return slots

    def to_term(self) -> Any:
        terms = [iterator.to_term() for iterator in self.iterators]
        result = terms[-1]
        for term in reversed(terms[:-1]):
            result = Struct(',', term, result)
        return result


def conjuncts(spec: Any) -> List[Any]:
    """Flatten a ``','/2`` conjunction of specifiers, left to right."""
    found = []
    stack = [spec]
    while stack:
        term = deref(stack.pop())
        if isinstance(term, Struct) and term.name == ',' and len(term.args) == 2:
            stack.append(term.args[1])
            stack.append(term.args[0])
        else:
            found.append(term)
    return found


def parse_iterator(term: Any) -> IteratorSpec:
    term = deref(term)
    if isinstance(term, Var):
        raise SpecificationError(term, "specifier is unbound")
    if isinstance(term, Struct):
        if term.name == 'param' and term.args:
            return Param(tuple(term.args))
        shape = _SHAPES.get((term.name, len(term.args)))
        if shape is not None:
            return shape(*term.args)
    raise SpecificationError(term, "unknown iterator")


def parse_specification(spec: Any) -> LoopSpecification:
    """
    Parse the conjunction ``spec`` into a ``LoopSpecification``.

    Raises ``SpecificationError`` carrying the offending conjunct if any
    conjunct is not one of the supported iterator shapes.
    """
    return LoopSpecification(tuple(parse_iterator(term) for term in conjuncts(spec)))
