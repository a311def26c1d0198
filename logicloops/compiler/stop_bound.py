"""
Stop-Bound Solver
=================

Computes the exact value a stepped range stops at, so that adding
``step`` to ``low`` repeatedly lands on it without overshooting:

    step =  1   stop = max(low, high + 1)
    step = -1   stop = min(low, high - 1)
    step >  1   dist = max(high - low + step, 0)
                stop = low + dist - (dist mod step)
    step < -1   dist = max(low - high - step, 0)
                stop = low - dist + (dist mod |step|)

An empty range (``low`` already past ``high`` in the stepping direction)
stops at ``low``, i.e. the loop performs zero iterations.

``compute_stop`` applies the table to values known now; ``stop_goals``
emits the same computation as goals for a prelude, when the bounds are
only known at run time.
"""

from typing import Any, List

from logicloops.core.terms import Struct, Var
from logicloops.errors import SpecificationError


def check_step(step: Any) -> int:
    if not isinstance(step, int) or isinstance(step, bool):
        raise SpecificationError(step, "step must be an integer")
    if step == 0:
        raise SpecificationError(step, "step must not be zero")
    return step


def compute_stop(low, high, step: int):
    """Terminal index value for ``low..high`` stepping by ``step``."""
    check_step(step)
    if step == 1:
        return max(low, high + 1)
    if step == -1:
        return min(low, high - 1)
    if step > 0:
        dist = max(high - low + step, 0)
        return low + dist - (dist % step)
    dist = max(low - high - step, 0)
    return low - dist + (dist % -step)


def iteration_count(low, high, step: int) -> int:
    """Number of indices visited for ``low..high`` stepping by ``step``."""
    return int((compute_stop(low, high, step) - low) // step)


def stop_goals(low: Any, high: Any, step: int, stop: Var) -> List[Any]:
    """Goals that bind ``stop`` to ``compute_stop(low, high, step)`` when run."""
    check_step(step)
    if step == 1:
        return [Struct('is', stop, Struct('max', low, Struct('+', high, 1)))]
    if step == -1:
        return [Struct('is', stop, Struct('min', low, Struct('-', high, 1)))]
    dist = Var('Dist')
    if step > 0:
        span = Struct('+', Struct('-', high, low), step)
        position = Struct('-', Struct('+', low, dist), Struct('mod', dist, step))
    else:
        span = Struct('-', Struct('-', low, high), step)
        position = Struct('+', Struct('-', low, dist), Struct('mod', dist, -step))
    return [
        Struct('is', dist, Struct('max', span, 0)),
        Struct('is', stop, position),
    ]
