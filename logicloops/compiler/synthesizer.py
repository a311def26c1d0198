"""
Specification Combinator & Procedure Synthesizer
================================================

Turns the combined artifacts of a loop into the two clauses of its
auxiliary procedure:

    name(Terminal...) :- !.
    name(Head...)     :- StepGoals..., Body, name(Call...).

and the goal that replaces the loop at its use site:

    Prelude..., name(Initial...)

Clauses are snapshotted when they are built: every unbound variable is
replaced by a fresh one, consistently within each clause, so a stored
procedure never shares variables with the caller's terms.
"""

import hashlib
from typing import Any, Iterable, Tuple

from logicloops.compiler.artifacts import ArtifactGenerator, CompiledArtifacts
from logicloops.compiler.specs import LoopSpecification
from logicloops.core.terms import Struct, conj, rename, variant_key
from logicloops.runtime.procedure_table import Clause


def _call(name: str, args: Iterable[Any]) -> Any:
    args = tuple(args)
    return Struct(name, *args) if args else name


def generate_artifacts(specification: LoopSpecification,
                       generator: ArtifactGenerator = None) -> CompiledArtifacts:
    """Generate and fold the artifacts of every iterator, in order."""
    generator = generator or ArtifactGenerator()
    return generator.generate_all(specification)


def initial_goal(name: str, artifacts: CompiledArtifacts) -> Any:
    return conj(*artifacts.prelude, _call(name, artifacts.initial_args))


def synthesize(name: str, artifacts: CompiledArtifacts, body: Any) -> Tuple[Clause, Clause]:
    base = Clause(_call(name, artifacts.terminal_pattern), '!')
    recursive = Clause(
        _call(name, artifacts.head_pattern),
        conj(*artifacts.step_goals, body, _call(name, artifacts.call_args)),
    )
    return snapshot(base), snapshot(recursive)


def snapshot(clause: Clause) -> Clause:
    mapping = {}
    return Clause(rename(clause.head, mapping), rename(clause.body, mapping))


def signature(spec: Any, body: Any) -> str:
    """
    Structural signature of ``spec do body``.

    Two loops get the same signature iff they are variants of each other,
    i.e. equal up to a consistent renaming of their variables.
    """
    if isinstance(spec, LoopSpecification):
        spec = spec.to_term()
    key = variant_key(Struct('do', spec, body))
    return hashlib.sha1(key.encode('utf-8')).hexdigest()
