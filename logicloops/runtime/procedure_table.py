"""
Procedure Table & Generated-Procedure Cache
===========================================

The procedure table is the runtime's store of callable procedures, keyed
by name and arity. Generated loop procedures are registered once and are
immutable afterwards; user procedures may be extended clause by clause.

The generated-procedure cache sits in front of the table and maps a
loop's structural signature to the procedure compiled for it, so loops
of identical shape are compiled once per process.

Concurrency
-----------
Check-then-insert on the cache happens under a lock. Two threads that
compile the same signature may both synthesize a procedure; the first to
insert wins and the other result is dropped. Procedures for one signature
are interchangeable, so losing the race only wastes the synthesis.
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from logicloops.core.terms import Struct, rename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Clause:
    """A clause ``head :- body``; facts have the body ``true``."""
    head: Any
    body: Any = 'true'

    def renamed(self) -> Tuple[Any, Any]:
        """Head and body with fresh variables, as used for each call."""
        mapping: Dict[Any, Any] = {}
        return rename(self.head, mapping), rename(self.body, mapping)

    def as_term(self) -> Struct:
        return Struct(':-', self.head, self.body)


@dataclass(frozen=True)
class ProcedureHandle:
    """Reference to a procedure registered in a ``ProcedureTable``."""
    name: str
    arity: int

    @property
    def indicator(self) -> str:
        return f"{self.name}/{self.arity}"

    def goal(self, *args: Any) -> Any:
        if len(args) != self.arity:
            raise ValueError(
                f"{self.indicator} called with {len(args)} arguments"
            )
        return Struct(self.name, *args) if args else self.name


@dataclass(frozen=True)
class GeneratedProcedure:
    """The two clauses compiled for one loop shape."""
    name: str
    signature: str
    arity: int
    base_clause: Clause
    recursive_clause: Clause

    @property
    def clauses(self) -> Tuple[Clause, Clause]:
        return (self.base_clause, self.recursive_clause)

    @property
    def handle(self) -> ProcedureHandle:
        return ProcedureHandle(self.name, self.arity)


class ProcedureTable:
    """
    Name/arity indexed store of procedures.

    Usage:
        >>> table = ProcedureTable()
        >>> handle = table.register('do__0', base, recursive)
        >>> table.clauses('do__0', handle.arity)
    """

    def __init__(self):
        self._procedures: Dict[Tuple[str, int], List[Clause]] = {}
        self._sealed: set = set()
        self._lock = threading.RLock()

    def register(self, name: str, base_clause: Clause,
                 recursive_clause: Clause) -> ProcedureHandle:
        """
        Register a generated two-clause procedure.

        Registration is write-once: if the name is already taken by a
        generated procedure the existing one is kept.
        """
        arity = _head_arity(base_clause.head)
        key = (name, arity)
        with self._lock:
            if key in self._sealed:
                logger.debug("procedure %s/%d already registered", name, arity)
                return ProcedureHandle(name, arity)
            if key in self._procedures:
                raise ValueError(f"{name}/{arity} is already a user procedure")
            self._procedures[key] = [base_clause, recursive_clause]
            self._sealed.add(key)
        logger.debug("registered procedure %s/%d", name, arity)
        return ProcedureHandle(name, arity)

    def add_clause(self, clause: Clause) -> ProcedureHandle:
        """Append a clause to a user procedure."""
        head = clause.head
        name = head.name if isinstance(head, Struct) else head
        if not isinstance(name, str):
            raise TypeError(f"clause head is not callable: {head!r}")
        key = (name, _head_arity(head))
        with self._lock:
            if key in self._sealed:
                raise ValueError(f"{name}/{key[1]} is a generated procedure")
            self._procedures.setdefault(key, []).append(clause)
        return ProcedureHandle(*key)

    def clauses(self, name: str, arity: int) -> Optional[Tuple[Clause, ...]]:
        procedure = self._procedures.get((name, arity))
        return None if procedure is None else tuple(procedure)

    def lookup(self, name: str, arity: int) -> Optional[ProcedureHandle]:
        if (name, arity) in self._procedures:
            return ProcedureHandle(name, arity)
        return None

    def has_name(self, name: str) -> bool:
        return any(key[0] == name for key in self._procedures)

    def is_generated(self, name: str, arity: int) -> bool:
        return (name, arity) in self._sealed

    def __contains__(self, indicator: Tuple[str, int]) -> bool:
        return indicator in self._procedures

    def __len__(self) -> int:
        return len(self._procedures)


class ProcedureCache:
    """
    Signature-keyed, write-once cache of generated procedures.

    Entries are never evicted or replaced; the cache lives as long as the
    table it registers into.
    """

    def __init__(self, table: ProcedureTable):
        self.table = table
        self._entries: Dict[str, GeneratedProcedure] = {}
        self._lock = threading.Lock()
        self._counter = itertools.count()
        self.stats = {
            'hits': 0,
            'misses': 0,
            'races_lost': 0,
        }

    def lookup(self, signature: str) -> Optional[GeneratedProcedure]:
        procedure = self._entries.get(signature)
        if procedure is None:
            self.stats['misses'] += 1
        else:
            self.stats['hits'] += 1
        return procedure

    def insert(self, procedure: GeneratedProcedure) -> GeneratedProcedure:
        """
        Compare-and-insert: returns the procedure now stored for the
        signature, which is ``procedure`` unless another one got there first.
        """
        with self._lock:
            existing = self._entries.get(procedure.signature)
            if existing is not None:
                self.stats['races_lost'] += 1
                return existing
            self.table.register(
                procedure.name, procedure.base_clause, procedure.recursive_clause
            )
            self._entries[procedure.signature] = procedure
        logger.debug(
            "cached procedure %s for signature %s",
            procedure.name, procedure.signature[:12],
        )
        return procedure

    def fresh_name(self, prefix: str) -> str:
        """Next counter-based name (``do__0``, ``do__1``, ...)."""
        with self._lock:
            while True:
                name = f"{prefix}{next(self._counter)}"
                if not self.table.has_name(name):
                    return name

    def __iter__(self):
        return iter(list(self._entries.values()))

    def __contains__(self, signature: str) -> bool:
        return signature in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _head_arity(head: Any) -> int:
    return len(head.args) if isinstance(head, Struct) else 0
