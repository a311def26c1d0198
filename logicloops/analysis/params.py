"""
Loop Parameter Analysis
=======================

Variables a loop shares with the clause around it must be passed through
the generated procedure explicitly, because its clauses are stored with
fresh variables. This module finds those variables and checks them
against the ``param/N`` declarations written in the loop specification.

A declaration is consistent when it names exactly the shared variables,
or when there is no declaration at all.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Sequence

from logicloops.compiler.specs import conjuncts
from logicloops.core.terms import Struct, Var, deref, identical, term_variables
from logicloops.errors import InstantiationError
from logicloops.utils.helpers import format_name_list

logger = logging.getLogger(__name__)


class ParameterDeclarationWarning(UserWarning):
    """The declared loop parameters differ from the variables actually shared."""

    def __init__(self, not_declared: Sequence[Any], not_shared: Sequence[Any]):
        self.not_declared = list(not_declared)
        self.not_shared = list(not_shared)
        lines = ["do/2: inconsistent parameter declaration"]
        if self.not_declared:
            lines.append("\tShared but not declared: " + format_name_list(self.not_declared))
        if self.not_shared:
            lines.append("\tDeclared but not shared: " + format_name_list(self.not_shared))
        super().__init__("\n".join(lines))


@dataclass(frozen=True)
class ParamCheck:
    consistent: bool
    not_declared: List[Any]
    not_shared: List[Any]

    def warning(self) -> ParameterDeclarationWarning:
        return ParameterDeclarationWarning(self.not_declared, self.not_shared)


def shared_variables(goal: Any, context: Any) -> List[Var]:
    """
    Variables of ``goal`` that also occur in ``context`` outside ``goal``.

    The occurrence of ``goal`` inside ``context`` is skipped; the result is
    ordered by first occurrence in ``goal``.
    """
    outside = set()
    stack = [context]
    while stack:
        term = deref(stack.pop())
        if isinstance(term, Var):
            outside.add(term)
        elif isinstance(term, Struct):
            if term is goal or (term.name == 'do' and identical(term, goal)):
                continue
            stack.extend(term.args)
    return [var for var in term_variables(goal) if var in outside]


def declared_params(spec: Any) -> List[Any]:
    """Slots of every ``param/N`` conjunct of ``spec``, in order."""
    slots = []
    for term in conjuncts(spec):
        if isinstance(term, Var):
            raise InstantiationError(term, 'do/2')
        if isinstance(term, Struct) and term.name == 'param':
            slots.extend(term.args)
    return slots


def _unique(terms: Sequence[Any]) -> List[Any]:
    found: List[Any] = []
    for term in terms:
        term = deref(term)
        if not any(identical(term, seen) for seen in found):
            found.append(term)
    return found


def _difference(left: Sequence[Any], right: Sequence[Any]) -> List[Any]:
    return [term for term in left if not any(identical(term, other) for other in right)]


def check_params(shared: Sequence[Any], declared: Sequence[Any]) -> ParamCheck:
    """
    Compare the shared variables with the declared parameters as sets.

    An empty declaration is always consistent.
    """
    shared = _unique(shared)
    declared = _unique(declared)
    if not declared:
        return ParamCheck(True, [], [])
    not_declared = _difference(shared, declared)
    not_shared = _difference(declared, shared)
    consistent = not not_declared and not not_shared
    if not consistent:
        logger.debug("parameter mismatch: %d undeclared, %d unshared",
                     len(not_declared), len(not_shared))
    return ParamCheck(consistent, not_declared, not_shared)
