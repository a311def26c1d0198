"""
Per-Iterator Artifact Generator
===============================

Maps one iterator descriptor to the argument-threading artifacts that
drive the generated recursive procedure:

  initial_args      arguments of the first call
  terminal_pattern  argument pattern of the base clause
  prelude           goals run once before the first call
  head_pattern      argument pattern of the recursive clause
  step_goals        goals run on each iteration, before the body
  call_args         arguments of the recursive call

Decisions that depend on the descriptor's values (is a bound numeric, is
an accumulator's end ground) are taken on the dereferenced terms, so a
descriptor compiled ahead of time and one interpreted at run time follow
the same table.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List

from logicloops.compiler.specs import (
    Count, For, ForEach, ForEachArg, ForEachArgIndexed, FromTo,
    IteratorSpec, LoopSpecification, Param,
)
from logicloops.compiler.stop_bound import check_step, compute_stop, stop_goals
from logicloops.core.terms import NIL, Struct, Var, deref, is_ground, is_number
from logicloops.errors import SpecificationError


@dataclass
class CompiledArtifacts:
    """Argument-threading artifacts of one iterator or a whole specification."""
    initial_args: List[Any] = field(default_factory=list)
    terminal_pattern: List[Any] = field(default_factory=list)
    prelude: List[Any] = field(default_factory=list)
    head_pattern: List[Any] = field(default_factory=list)
    step_goals: List[Any] = field(default_factory=list)
    call_args: List[Any] = field(default_factory=list)

    @property
    def arity(self) -> int:
        return len(self.initial_args)

    def extend(self, other: 'CompiledArtifacts') -> 'CompiledArtifacts':
        self.initial_args.extend(other.initial_args)
        self.terminal_pattern.extend(other.terminal_pattern)
        self.prelude.extend(other.prelude)
        self.head_pattern.extend(other.head_pattern)
        self.step_goals.extend(other.step_goals)
        self.call_args.extend(other.call_args)
        return self


def _is(result: Any, expression: Any) -> Struct:
    return Struct('is', result, expression)


class ArtifactGenerator:
    """
    Dispatches each iterator kind to its ``visit_<Kind>`` method.

    Usage:
        >>> generator = ArtifactGenerator()
        >>> artifacts = generator.generate(ForEach(X, Xs))
        >>> artifacts.terminal_pattern
        ['[]']
    """

    def generate(self, iterator: IteratorSpec) -> CompiledArtifacts:
        visitor = getattr(self, 'visit_' + type(iterator).__name__, None)
        if visitor is None:
            raise SpecificationError(iterator, "no artifacts for this iterator kind")
        return visitor(iterator)

    def generate_all(self, specification: LoopSpecification) -> CompiledArtifacts:
        return combine(self.generate(iterator) for iterator in specification)

    def visit_ForEach(self, iterator: ForEach) -> CompiledArtifacts:
        tail = Var()
        return CompiledArtifacts(
            initial_args=[iterator.collection],
            terminal_pattern=[NIL],
            head_pattern=[Struct('.', iterator.element, tail)],
            call_args=[tail],
        )

    def visit_ForEachArg(self, iterator: ForEachArg) -> CompiledArtifacts:
        return self._argument_walk(iterator.element, iterator.compound, Var())

    def visit_ForEachArgIndexed(self, iterator: ForEachArgIndexed) -> CompiledArtifacts:
        return self._argument_walk(iterator.element, iterator.compound, iterator.index)

    def _argument_walk(self, element: Any, compound: Any, index: Any) -> CompiledArtifacts:
        arity, stop = Var(), Var()
        structure, following, limit = Var(), Var(), Var()
        return CompiledArtifacts(
            initial_args=[compound, 1, stop],
            terminal_pattern=[Var(), index, index],
            prelude=[
                Struct('functor', compound, Var(), arity),
                _is(stop, Struct('+', arity, 1)),
            ],
            head_pattern=[structure, index, limit],
            step_goals=[
                _is(following, Struct('+', index, 1)),
                Struct('arg', index, structure, element),
            ],
            call_args=[structure, following, limit],
        )

    def visit_For(self, iterator: For) -> CompiledArtifacts:
        index = deref(iterator.index)
        if not isinstance(index, Var):
            raise SpecificationError(iterator.to_term(), "index must be an unbound variable")
        step = deref(iterator.step)
        try:
            check_step(step)
        except SpecificationError as exc:
            raise SpecificationError(iterator.to_term(), exc.reason) from exc
        low = deref(iterator.low)
        high = deref(iterator.high)
        following = Var()
        advance = _is(following, Struct('+', index, step))

        if is_number(high):
            if is_number(low):
                start, stop, prelude = low, compute_stop(low, high, step), []
            elif step in (1, -1):
                start, stop = Var(), high + step
                clamp = 'min' if step == 1 else 'max'
                prelude = [_is(start, Struct(clamp, low, stop))]
            else:
                raise SpecificationError(
                    iterator.to_term(), "an unresolved lower bound needs step 1 or -1"
                )
            return CompiledArtifacts(
                initial_args=[start],
                terminal_pattern=[stop],
                prelude=prelude,
                head_pattern=[index],
                step_goals=[advance],
                call_args=[following],
            )

        if not is_number(low) and step not in (1, -1):
            raise SpecificationError(
                iterator.to_term(), "an unresolved lower bound needs step 1 or -1"
            )
        prelude = []
        if is_number(low) or isinstance(low, Var):
            start = low
        else:
            start = Var()
            prelude.append(_is(start, low))
        stop = Var()
        prelude.extend(stop_goals(start, high, step, stop))
        limit, bound = Var(), Var()
        return CompiledArtifacts(
            initial_args=[start, stop],
            terminal_pattern=[limit, limit],
            prelude=prelude,
            head_pattern=[index, bound],
            step_goals=[advance],
            call_args=[following, bound],
        )

    def visit_Count(self, iterator: Count) -> CompiledArtifacts:
        index = deref(iterator.index)
        if not isinstance(index, Var):
            raise SpecificationError(iterator.to_term(), "index must be an unbound variable")
        low = deref(iterator.low)
        high = deref(iterator.high)
        if is_number(low):
            start, prelude = low - 1, []
        else:
            start = Var()
            prelude = [_is(start, Struct('-', low, 1))]
        previous = Var()
        advance = _is(index, Struct('+', previous, 1))

        if not is_ground(high):
            limit, bound = Var(), Var()
            return CompiledArtifacts(
                initial_args=[start, high],
                terminal_pattern=[limit, limit],
                prelude=prelude,
                head_pattern=[previous, bound],
                step_goals=[advance],
                call_args=[index, bound],
            )
        if isinstance(high, int) and not isinstance(high, bool):
            return CompiledArtifacts(
                initial_args=[start],
                terminal_pattern=[high],
                prelude=prelude,
                head_pattern=[previous],
                step_goals=[advance],
                call_args=[index],
            )
        raise SpecificationError(iterator.to_term(), "upper bound must be an integer or unbound")

    def visit_FromTo(self, iterator: FromTo) -> CompiledArtifacts:
        if not is_ground(iterator.stop):
            limit, bound = Var(), Var()
            return CompiledArtifacts(
                initial_args=[iterator.start, iterator.stop],
                terminal_pattern=[limit, limit],
                head_pattern=[iterator.current, bound],
                call_args=[iterator.following, bound],
            )
        return CompiledArtifacts(
            initial_args=[iterator.start],
            terminal_pattern=[iterator.stop],
            head_pattern=[iterator.current],
            call_args=[iterator.following],
        )

    def visit_Param(self, iterator: Param) -> CompiledArtifacts:
        slots = list(iterator.slots)
        return CompiledArtifacts(
            initial_args=list(slots),
            terminal_pattern=list(slots),
            head_pattern=list(slots),
            call_args=list(slots),
        )


def combine(parts: Iterable[CompiledArtifacts]) -> CompiledArtifacts:
    """Concatenate artifacts in specification order."""
    combined = CompiledArtifacts()
    for part in parts:
        combined.extend(part)
    return combined
