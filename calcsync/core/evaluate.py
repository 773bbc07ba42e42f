"""Arithmetic Evaluator: the pure (left, right, operation) -> result rule.

Invariants:
    - evaluate() is pure and deterministic: no IO, no clock, no randomness
    - Divide with right == 0 always raises DivisionByZeroError
    - Anything outside Operation raises UnsupportedOperationError
    - A result that overflows to inf raises ResultOutOfRangeError; nothing
      non-finite ever reaches the store or the event stream
    - The store never computes results; every persisted result comes from here

Design Decisions:
    - Explicit dict dispatch over if/elif chain: the closed set is visible in one place
    - parse_operation() accepts names and legacy integer codes so older clients keep working
"""

import math
import operator
from typing import Callable

from calcsync.core.domain_types import Operation, LEGACY_OPERATION_CODES
from calcsync.core.errors import (
    DivisionByZeroError, ResultOutOfRangeError, UnsupportedOperationError,
)


_APPLY: dict[Operation, Callable[[float, float], float]] = {
    Operation.ADD: operator.add,
    Operation.SUBTRACT: operator.sub,
    Operation.MULTIPLY: operator.mul,
    Operation.DIVIDE: operator.truediv,
}

_BY_NAME = {op.value.lower(): op for op in Operation}


def parse_operation(value: object) -> Operation:
    """Coerce a wire value (enum, name, or legacy int code) to Operation."""
    if isinstance(value, Operation):
        return value
    # bool is an int subclass; True/False are not operation codes
    if isinstance(value, int) and not isinstance(value, bool):
        if value in LEGACY_OPERATION_CODES:
            return LEGACY_OPERATION_CODES[value]
        raise UnsupportedOperationError(value)
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _BY_NAME:
            return _BY_NAME[key]
        if key.isdigit() and int(key) in LEGACY_OPERATION_CODES:
            return LEGACY_OPERATION_CODES[int(key)]
    raise UnsupportedOperationError(value)


def evaluate(left: float, right: float, op: Operation) -> float:
    """Compute left <op> right, or raise a domain error."""
    if not isinstance(op, Operation):
        raise UnsupportedOperationError(op)
    if op is Operation.DIVIDE and right == 0:
        raise DivisionByZeroError()
    result = float(_APPLY[op](float(left), float(right)))
    if not math.isfinite(result):
        raise ResultOutOfRangeError()
    return result