"""
logicloops: Logical Loops Compiled to Recursive Procedures
==========================================================

logicloops compiles declarative multi-iterator loops, ``Spec do Body``,
into auxiliary two-clause recursive procedures that are cached by a
structural signature of the loop.

Core Components:
    - compiler: iterator descriptors, artifact generation, stop bounds,
      procedure synthesis and the ahead-of-time loop compiler
    - runtime: backtracking engine, builtins, procedure table and the
      reference interpreter for ``do/2``
    - analysis: shared-variable detection and parameter checks
    - core: terms, unification, arithmetic and the text reader

Usage:
    >>> import logicloops
    >>> compiler = logicloops.LoopCompiler()
    >>> compiler.query("do((foreach(X, [a, b, c]), count(I, 1, N)), true)")['N']
    3

    >>> engine = logicloops.Engine()
    >>> engine.query("do(for_(I, 5, 1, -1), writeln(I))")
"""

__version__ = "1.0.0"
__author__ = "logicloops developers"

from logicloops.errors import ExistenceError, InstantiationError, SpecificationError
from logicloops.core.terms import (
    NIL, Struct, Var, from_term, make_list, resolve, to_term,
)
from logicloops.core.reader import TermReader, read_clause, read_term, read_terms
from logicloops.compiler.specs import (
    Count, For, ForEach, ForEachArg, ForEachArgIndexed, FromTo, LoopSpecification,
    Param, parse_specification,
)
from logicloops.compiler.stop_bound import compute_stop, iteration_count
from logicloops.compiler.artifacts import ArtifactGenerator, CompiledArtifacts
from logicloops.compiler.synthesizer import signature, synthesize
from logicloops.runtime.builtins import DEFAULT_BUILTINS, BuiltinKind, BuiltinRegistry
from logicloops.runtime.procedure_table import (
    Clause, GeneratedProcedure, ProcedureCache, ProcedureHandle, ProcedureTable,
)
from logicloops.runtime.engine import Engine, get_default_engine
from logicloops.runtime.interpreter import ReferenceInterpreter
from logicloops.analysis.params import (
    ParamCheck, ParameterDeclarationWarning, check_params, shared_variables,
)
from logicloops.compiler.loop_compiler import (
    CompiledLoop, LoopCompiler, get_default_compiler,
)
