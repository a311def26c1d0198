"""
Engine
======

The host runtime that stores and runs procedures, including the
procedures generated by the loop compiler.

Execution model
---------------
Goals run on an explicit-stack machine rather than on Python recursion:

  - A continuation is a linked list of ``Frame`` objects (goal to run, the
    frame to run after it, and the choicepoint height a cut returns to).
  - A choicepoint records the trail mark to undo to and the remaining
    alternatives: untried clauses of a procedure, or a generator of
    further solutions of a non-deterministic builtin.
  - When the last clause of a procedure is tried its choicepoint is
    dropped first, so a deterministic recursive loop runs in constant
    choicepoint space however many iterations it performs.

``solve`` is a generator that yields once per solution; bindings are
visible while it is suspended and are undone when it is resumed or closed.

All ``solve`` generators of one engine share its trail, so they must nest:
a generator may only be resumed while no generator started after it is
still open. Resuming an outer one early raises ``RuntimeError``. Use one
engine per independent search.
"""

import logging
import sys
from typing import Any, Dict, Iterator, List, Optional, TextIO

from logicloops.core.reader import TermReader
from logicloops.core.terms import Struct, Trail, Var, deref, format_term, from_term, unify
from logicloops.errors import ExistenceError, InstantiationError
from logicloops.runtime.builtins import DEFAULT_BUILTINS, BuiltinKind, BuiltinRegistry
from logicloops.runtime.interpreter import LOOP_BUILTINS
from logicloops.runtime.procedure_table import (
    Clause, ProcedureCache, ProcedureHandle, ProcedureTable,
)

logger = logging.getLogger(__name__)

_HALT = Struct('$halt')


class Frame:
    __slots__ = ('goal', 'next', 'cut_barrier')

    def __init__(self, goal: Any, next: Optional['Frame'], cut_barrier: int):
        self.goal = goal
        self.next = next
        self.cut_barrier = cut_barrier


class _ClauseChoice:
    __slots__ = ('mark', 'goal', 'clauses', 'index', 'next', 'barrier')

    def __init__(self, mark, goal, clauses, next, barrier):
        self.mark = mark
        self.goal = goal
        self.clauses = clauses
        self.index = 0
        self.next = next
        self.barrier = barrier


class _GeneratorChoice:
    __slots__ = ('mark', 'alternatives')

    def __init__(self, mark, alternatives):
        self.mark = mark
        self.alternatives = alternatives


class Engine:
    """
    Backtracking executor over a procedure table and a builtin registry.

    Usage:
        >>> engine = Engine()
        >>> engine.query("X is 2 + 3")
        {'X': 5}
        >>> engine.query("do(for_(I, 1, 3), writeln(I))")
        1
        2
        3
        {'I': I}
    """

    def __init__(
        self,
        builtins: Optional[BuiltinRegistry] = None,
        output: Optional[TextIO] = None,
        enable_logging: bool = False,
    ):
        base = DEFAULT_BUILTINS if builtins is None else builtins
        self.builtins = base.merged(LOOP_BUILTINS)
        self.table = ProcedureTable()
        self.procedure_cache = ProcedureCache(self.table)
        self.trail = Trail()
        self._open_solves: List[object] = []
        self.output = output
        self.stats = {
            'inferences': 0,
            'backtracks': 0,
        }

        if enable_logging:
            logging.basicConfig(level=logging.DEBUG)

    # ---------- Program ----------

    def add_clause(self, head: Any, body: Any = 'true') -> ProcedureHandle:
        """Add a user clause; ``head`` may also be a ``':-'(Head, Body)`` term."""
        head = deref(head)
        if isinstance(head, Struct) and head.name == ':-' and len(head.args) == 2:
            head, body = head.args
        return self.table.add_clause(Clause(head, body))

    def invoke(self, handle: ProcedureHandle, args: List[Any]) -> Iterator[None]:
        """Run a registered procedure; yields once per solution."""
        return self.solve(handle.goal(*args))

    # ---------- Solving ----------

    def unify(self, left: Any, right: Any) -> bool:
        return unify(left, right, self.trail)

    def solve(self, goal: Any) -> Iterator[None]:
        """Yield once for every solution of ``goal``."""
        trail = self.trail
        base_mark = trail.mark()
        stack: List[Any] = []
        token = object()
        self._open_solves.append(token)
        cont: Optional[Frame] = Frame(goal, Frame(_HALT, None, 0), 0)
        try:
            while True:
                if cont is None:
                    cont = self._backtrack(stack)
                    if cont is None:
                        return
                    continue
                current = deref(cont.goal)
                if current is _HALT:
                    yield
                    if self._open_solves[-1] is not token:
                        raise RuntimeError(
                            "solve resumed while a later solve on this engine is still open"
                        )
                    cont = None
                    continue
                cont = self._step(current, cont, stack)
        finally:
            self._open_solves.remove(token)
            trail.undo(base_mark)

    def succeeds(self, goal: Any) -> bool:
        """True if ``goal`` has a solution; its bindings are undone."""
        solutions = self.solve(goal)
        try:
            return next(solutions, False) is None
        finally:
            solutions.close()

    def run(self, goal: Any, variables: Optional[Dict[str, Var]] = None) -> Optional[Dict[str, Any]]:
        """
        First solution of ``goal`` as ``{name: value}`` for ``variables``,
        or ``None`` when the goal has no solution.
        """
        solutions = self.solve(goal)
        try:
            for _ in solutions:
                return self._answer(variables or {})
            return None
        finally:
            solutions.close()

    def run_all(self, goal: Any, variables: Optional[Dict[str, Var]] = None,
                limit: Optional[int] = None) -> List[Dict[str, Any]]:
        answers = []
        solutions = self.solve(goal)
        try:
            for _ in solutions:
                answers.append(self._answer(variables or {}))
                if limit is not None and len(answers) >= limit:
                    break
        finally:
            solutions.close()
        return answers

    def query(self, text: str) -> Optional[Dict[str, Any]]:
        """Read ``text`` as a goal and return its first answer."""
        reader = TermReader()
        goal = reader.read(text)
        return self.run(goal, reader.variables)

    def query_all(self, text: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        reader = TermReader()
        goal = reader.read(text)
        return self.run_all(goal, reader.variables, limit)

    def write(self, text: str):
        (self.output or sys.stdout).write(text)

    @staticmethod
    def _answer(variables: Dict[str, Var]) -> Dict[str, Any]:
        return {
            name: from_term(var)
            for name, var in variables.items()
            if not name.startswith('_')
        }

    # ---------- Machine ----------

    def _step(self, goal: Any, cont: Frame, stack: List[Any]) -> Optional[Frame]:
        following = cont.next
        barrier = cont.cut_barrier

        if isinstance(goal, Struct):
            name, args = goal.name, goal.args
        elif isinstance(goal, str):
            name, args = goal, ()
        elif isinstance(goal, Var):
            raise InstantiationError(goal, 'call/1')
        else:
            raise TypeError(f"not a callable goal: {format_term(goal)}")

        self.stats['inferences'] += 1
        arity = len(args)

        if arity == 0:
            if name == 'true':
                return following
            if name in ('fail', 'false'):
                return None
            if name == '!':
                del stack[barrier:]
                return following
        elif arity == 2:
            if name == ',':
                return Frame(args[0], Frame(args[1], following, barrier), barrier)
            if name == ';':
                left = deref(args[0])
                if isinstance(left, Struct) and left.name == '->' and len(left.args) == 2:
                    return self._if_then_else(
                        left.args[0], left.args[1], args[1], following, barrier, stack
                    )
                stack.append(_GeneratorChoice(
                    self.trail.mark(), iter([Frame(args[1], following, barrier)])
                ))
                return Frame(left, following, barrier)
            if name == '->':
                return self._if_then_else(args[0], args[1], 'fail', following, barrier, stack)
        elif arity == 1 and name == '$cut':
            del stack[args[0]:]
            return following

        builtin = self.builtins.get(name, arity)
        if builtin is not None:
            kind, func = builtin
            if kind is BuiltinKind.DETERMINISTIC:
                return following if func(self, *args) else None
            if kind is BuiltinKind.CONTROL:
                return Frame(func(self, *args), following, len(stack))
            stack.append(_GeneratorChoice(
                self.trail.mark(), (following for _ in func(self, *args))
            ))
            return None

        clauses = self.table.clauses(name, arity)
        if clauses is None:
            raise ExistenceError(name, arity)
        if not clauses:
            return None
        stack.append(_ClauseChoice(self.trail.mark(), goal, clauses, following, len(stack)))
        return None

    def _if_then_else(self, condition, then, otherwise, following, barrier, stack):
        height = len(stack)
        stack.append(_GeneratorChoice(
            self.trail.mark(), iter([Frame(otherwise, following, barrier)])
        ))
        commit = Frame(Struct('$cut', height), Frame(then, following, barrier), barrier)
        return Frame(condition, commit, height + 1)

    def _backtrack(self, stack: List[Any]) -> Optional[Frame]:
        trail = self.trail
        while stack:
            choice = stack[-1]
            trail.undo(choice.mark)
            self.stats['backtracks'] += 1
            if isinstance(choice, _ClauseChoice):
                cont = self._next_clause(choice, stack)
            else:
                cont = next(choice.alternatives, None)
                if cont is None:
                    stack.pop()
            if cont is not None:
                return cont
        return None

    def _next_clause(self, choice: _ClauseChoice, stack: List[Any]) -> Optional[Frame]:
        clauses = choice.clauses
        while choice.index < len(clauses):
            clause = clauses[choice.index]
            choice.index += 1
            if choice.index == len(clauses):
                stack.pop()
            head, body = clause.renamed()
            if unify(head, choice.goal, self.trail):
                return Frame(body, choice.next, choice.barrier)
            self.trail.undo(choice.mark)
        return None


_default_engine: Optional[Engine] = None


def get_default_engine() -> Engine:
    """The process-wide engine used by the module-level helpers."""
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine
