"""
Loop Compiler
=============

Compiles ``Spec do Body`` ahead of time into a cached two-clause
procedure and rewrites the loop into a call to it.

Pipeline for one loop:
    1. Parameter check: the variables the loop shares with its context
       are compared with its ``param/N`` declarations (warning only).
    2. Parse the specification into iterator descriptors.
    3. Generate and combine the per-iterator artifacts.
    4. Compute the structural signature of ``Spec do Body``.
    5. Reuse the cached procedure for the signature, or synthesize the
       base and recursive clauses and insert them into the cache.
    6. Return the replacement goal: preludes, then the initial call.

Loops nested in a loop body are compiled in turn, against the generated
recursive clause.

Usage:
    >>> compiler = LoopCompiler()
    >>> answer = compiler.query(
    ...     "do((foreach(X, [1, 2, 3]), fromto(0, S0, S1, Sum)), S1 is S0 + X)")
    >>> answer['Sum']
    6
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from logicloops.analysis.params import (
    ParameterDeclarationWarning, check_params, declared_params, shared_variables,
)
from logicloops.compiler.artifacts import ArtifactGenerator
from logicloops.compiler.specs import LoopSpecification, parse_specification
from logicloops.compiler.synthesizer import initial_goal, signature, synthesize
from logicloops.core.reader import TermReader
from logicloops.core.terms import Struct, Var, deref
from logicloops.runtime.engine import Engine, get_default_engine
from logicloops.runtime.procedure_table import Clause, GeneratedProcedure, ProcedureHandle

logger = logging.getLogger(__name__)

# Goal arguments that are themselves goals, per control construct.
_GOAL_ARGUMENTS = {
    (',', 2): (0, 1),
    (';', 2): (0, 1),
    ('->', 2): (0, 1),
    ('\\+', 1): (0,),
    ('not', 1): (0,),
    ('call', 1): (0,),
    ('findall', 3): (1,),
    ('forall', 2): (0, 1),
}


@dataclass
class CompiledLoop:
    """Result of compiling one loop."""
    goal: Any
    procedure: GeneratedProcedure
    signature: str
    reused: bool = False
    warnings: List[ParameterDeclarationWarning] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.procedure.name

    @property
    def handle(self) -> ProcedureHandle:
        return self.procedure.handle


class LoopCompiler:
    """
    Ahead-of-time compiler for logical loops.

    Generated procedures are registered in the engine's procedure table;
    the signature cache is the engine's, so every compiler attached to
    one engine shares it.
    """

    NAMING_SCHEMES = ('signature', 'counter')
    DEFAULT_PREFIX = 'do__'
    # Most recent parameter warnings kept on the compiler.
    MAX_WARNINGS = 100

    def __init__(
        self,
        engine: Optional[Engine] = None,
        naming: str = 'signature',
        name_prefix: str = DEFAULT_PREFIX,
        auto_params: bool = True,
        enable_logging: bool = False,
    ):
        if naming not in self.NAMING_SCHEMES:
            raise ValueError(
                f"unknown naming scheme {naming!r}, expected one of {self.NAMING_SCHEMES}"
            )
        self.engine = engine if engine is not None else Engine()
        self.cache = self.engine.procedure_cache
        self.naming = naming
        self.name_prefix = name_prefix
        self.auto_params = auto_params
        self.generator = ArtifactGenerator()
        self.warnings: List[ParameterDeclarationWarning] = []
        self.stats = {
            'loops_compiled': 0,
            'procedures_synthesized': 0,
            'procedures_reused': 0,
        }

        if enable_logging:
            logging.basicConfig(level=logging.DEBUG)

    # ---------- Compilation ----------

    def compile(self, spec: Any, body: Any,
                shared: Optional[Sequence[Var]] = None) -> CompiledLoop:
        """
        Compile ``spec do body``.

        ``shared`` lists the variables the loop shares with its context.
        When given, it is checked against the declared parameters and, with
        ``auto_params``, passed through the loop as an extra ``param/N``.
        """
        if isinstance(spec, LoopSpecification):
            spec = spec.to_term()
        spec = deref(spec)
        warnings: List[ParameterDeclarationWarning] = []

        if shared is not None:
            shared = list(shared)
            check = check_params(shared, declared_params(spec))
            if not check.consistent:
                warning = check.warning()
                logger.warning("%s", warning)
                warnings.append(warning)
                self.warnings.append(warning)
                del self.warnings[:-self.MAX_WARNINGS]
            if self.auto_params and shared:
                spec = Struct(',', Struct('param', *shared), spec)

        specification = parse_specification(spec)
        artifacts = self.generator.generate_all(specification)
        loop_signature = signature(spec, body)
        self.stats['loops_compiled'] += 1

        procedure = self.cache.lookup(loop_signature)
        reused = procedure is not None
        if procedure is None:
            candidate = self._synthesize(loop_signature, artifacts, body)
            procedure = self.cache.insert(candidate)
            reused = procedure is not candidate
            if not reused:
                self.stats['procedures_synthesized'] += 1
        if reused:
            self.stats['procedures_reused'] += 1
            logger.debug("reusing %s for signature %s", procedure.name, loop_signature[:12])

        return CompiledLoop(
            goal=initial_goal(procedure.name, artifacts),
            procedure=procedure,
            signature=loop_signature,
            reused=reused,
            warnings=warnings,
        )

    def take_warnings(self) -> List[ParameterDeclarationWarning]:
        """Return the collected parameter warnings and clear the list."""
        warnings, self.warnings = self.warnings, []
        return warnings

    def _synthesize(self, loop_signature: str, artifacts, body: Any) -> GeneratedProcedure:
        name = self._procedure_name(loop_signature)
        base, recursive = synthesize(name, artifacts, body)
        recursive = Clause(
            recursive.head,
            self.expand_goal(recursive.body, recursive.as_term()),
        )
        logger.debug("synthesized %s/%d", name, artifacts.arity)
        return GeneratedProcedure(name, loop_signature, artifacts.arity, base, recursive)

    def _procedure_name(self, loop_signature: str) -> str:
        if self.naming == 'counter':
            return self.cache.fresh_name(self.name_prefix)
        return f"{self.name_prefix}{loop_signature}"

    # ---------- Expansion ----------

    def expand_goal(self, goal: Any, context: Any = None) -> Any:
        """
        Replace every loop inside ``goal`` with its compiled initial goal.

        ``context`` is the term the loops' shared variables are computed
        against (usually the enclosing clause); without it no parameters
        are added or checked.
        """
        goal = deref(goal)
        if not isinstance(goal, Struct):
            return goal
        if goal.name == 'do' and len(goal.args) == 2:
            shared = None if context is None else shared_variables(goal, context)
            return self.compile(goal.args[0], goal.args[1], shared).goal
        positions = _GOAL_ARGUMENTS.get((goal.name, len(goal.args)))
        if positions is None:
            return goal
        args = list(goal.args)
        for position in positions:
            args[position] = self.expand_goal(args[position], context)
        return Struct(goal.name, *args)

    def expand_clause(self, clause: Any) -> Struct:
        """Expand the loops in the body of ``Head :- Body`` (or a fact)."""
        clause = deref(clause)
        if isinstance(clause, Struct) and clause.name == ':-' and len(clause.args) == 2:
            head, body = clause.args
        else:
            head, body = clause, 'true'
        return Struct(':-', head, self.expand_goal(body, clause))

    def add_clause(self, head: Any, body: Any = 'true') -> ProcedureHandle:
        """Expand a user clause and add it to the engine."""
        head = deref(head)
        if isinstance(head, Struct) and head.name == ':-' and len(head.args) == 2:
            clause = head
        else:
            clause = Struct(':-', head, body)
        return self.engine.add_clause(self.expand_clause(clause))

    def consult(self, clauses: Sequence[Any]) -> List[ProcedureHandle]:
        return [self.add_clause(clause) for clause in clauses]

    # ---------- Running ----------

    def solve(self, spec: Any, body: Any,
              shared: Optional[Sequence[Var]] = None) -> Iterator[None]:
        """Compile the loop and yield once per solution of its goal."""
        return self.engine.solve(self.compile(spec, body, shared).goal)

    def query(self, text: str) -> Optional[Dict[str, Any]]:
        """Read ``text`` as a goal, expand its loops and return the first answer."""
        reader = TermReader()
        goal = reader.read(text)
        return self.engine.run(self.expand_goal(goal, goal), reader.variables)

    def query_all(self, text: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        reader = TermReader()
        goal = reader.read(text)
        return self.engine.run_all(self.expand_goal(goal, goal), reader.variables, limit)


_default_compiler: Optional[LoopCompiler] = None


def get_default_compiler() -> LoopCompiler:
    """The process-wide compiler, attached to the default engine."""
    global _default_compiler
    if _default_compiler is None:
        _default_compiler = LoopCompiler(get_default_engine())
    return _default_compiler
