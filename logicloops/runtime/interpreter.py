"""
Reference Interpreter
=====================

Runs ``Spec do Body`` directly, without synthesizing a named procedure.
The artifacts are generated from the loop's current bindings every time
the goal is called, then driven by ``'$do_loop'/3``:

    '$do_loop'(Args, Template, Base)
        a fresh copy of Base unifies with Args  ->  succeed, commit
        otherwise                               ->  copy Template,
                                                    unify its head with Args,
                                                    run its goal,
                                                    continue with its call args

This is the ground truth the compiled path is checked against: for any
loop both yield the same answers in the same order, including none.
"""

import logging
from typing import Any, Dict, Iterator, Optional

from logicloops.compiler.specs import LoopSpecification, parse_specification
from logicloops.compiler.synthesizer import generate_artifacts
from logicloops.core.terms import Struct, Var, conj, copy_term, make_list, unify
from logicloops.runtime.builtins import BuiltinRegistry

logger = logging.getLogger(__name__)

LOOP_BUILTINS = BuiltinRegistry()


@LOOP_BUILTINS.control('do', 2)
def _do(engine, spec, body):
    artifacts = generate_artifacts(parse_specification(spec))
    logger.debug("interpreting do/2 over %d loop argument(s)", artifacts.arity)
    template = Struct(
        '$body',
        make_list(artifacts.head_pattern),
        conj(*artifacts.step_goals, body),
        make_list(artifacts.call_args),
    )
    loop = Struct(
        '$do_loop',
        make_list(artifacts.initial_args),
        template,
        make_list(artifacts.terminal_pattern),
    )
    return conj(*artifacts.prelude, loop)


@LOOP_BUILTINS.control('$do_loop', 3)
def _do_loop(engine, args, template, base):
    trail = engine.trail
    mark = trail.mark()
    if unify(copy_term(base), args, trail):
        return 'true'
    trail.undo(mark)
    head, goal, call_args = copy_term(template).args
    if not unify(head, args, trail):
        return 'fail'
    return conj(goal, Struct('$do_loop', call_args, template, base))


class ReferenceInterpreter:
    """
    Python entry point for interpreted loops.

    Usage:
        >>> interpreter = ReferenceInterpreter(engine)
        >>> spec, body = read_terms("foreach(X, [1, 2]), fromto(0, S0, S1, S)",
        ...                         "S1 is S0 + X")[0]
        >>> for _ in interpreter.solve(spec, body):
        ...     print(resolve(S))
        3
    """

    def __init__(self, engine):
        self.engine = engine

    @staticmethod
    def goal(spec: Any, body: Any) -> Struct:
        if isinstance(spec, LoopSpecification):
            spec = spec.to_term()
        return Struct('do', spec, body)

    def solve(self, spec: Any, body: Any) -> Iterator[None]:
        return self.engine.solve(self.goal(spec, body))

    def run(self, spec: Any, body: Any,
            variables: Optional[Dict[str, Var]] = None) -> Optional[Dict[str, Any]]:
        return self.engine.run(self.goal(spec, body), variables)
