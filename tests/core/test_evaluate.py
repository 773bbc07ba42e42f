"""Arithmetic Evaluator: verifies the pure (left, right, op) -> result rule.

Invariants:
    - Known vectors: 10+5=15, 20/4=5, 7*3=21
    - Divide by zero raises DivisionByZeroError addressed to "right"
    - Anything outside Operation raises UnsupportedOperationError
    - Results that overflow to inf raise ResultOutOfRangeError addressed to "result"
    - Repeated calls with the same input give the same output
"""

import pytest

from calcsync.core.domain_types import Operation
from calcsync.core.errors import (
    DivisionByZeroError, ResultOutOfRangeError, UnsupportedOperationError,
)
from calcsync.core.evaluate import evaluate, parse_operation


def test_add_vector():
    assert evaluate(10, 5, Operation.ADD) == 15


def test_divide_vector():
    assert evaluate(20, 4, Operation.DIVIDE) == 5


def test_multiply_vector():
    assert evaluate(7, 3, Operation.MULTIPLY) == 21


def test_subtract_can_go_negative():
    assert evaluate(3, 10, Operation.SUBTRACT) == -7


def test_result_is_float():
    assert isinstance(evaluate(1, 2, Operation.ADD), float)


def test_divide_produces_fraction():
    assert evaluate(1, 4, Operation.DIVIDE) == 0.25


@pytest.mark.parametrize("left", [0, 1, -3.5, 1e300])
def test_divide_by_zero_raises(left):
    with pytest.raises(DivisionByZeroError) as exc:
        evaluate(left, 0, Operation.DIVIDE)
    assert "right" in exc.value.fields
    assert exc.value.http_status == 400


def test_divide_by_negative_zero_raises():
    with pytest.raises(DivisionByZeroError):
        evaluate(5, -0.0, Operation.DIVIDE)


@pytest.mark.parametrize("left,right,op", [
    (1e308, 10, Operation.MULTIPLY),
    (1.7e308, 1.7e308, Operation.ADD),
    (-1.7e308, 1.7e308, Operation.SUBTRACT),
    (1e308, 1e-10, Operation.DIVIDE),
])
def test_overflowing_result_raises(left, right, op):
    with pytest.raises(ResultOutOfRangeError) as exc:
        evaluate(left, right, op)
    assert "result" in exc.value.fields
    assert exc.value.http_status == 400


def test_largest_finite_product_is_allowed():
    assert evaluate(1e154, 1e154, Operation.MULTIPLY) == pytest.approx(1e308)


def test_zero_right_is_fine_for_other_operations():
    assert evaluate(5, 0, Operation.ADD) == 5
    assert evaluate(5, 0, Operation.SUBTRACT) == 5
    assert evaluate(5, 0, Operation.MULTIPLY) == 0


@pytest.mark.parametrize("op", ["Add", "Modulo", 4, None])
def test_non_enum_operation_rejected(op):
    with pytest.raises(UnsupportedOperationError) as exc:
        evaluate(1, 2, op)
    assert "operation" in exc.value.fields


def test_evaluate_is_deterministic():
    results = {evaluate(0.1, 0.2, Operation.ADD) for _ in range(5)}
    assert len(results) == 1


# ─── parse_operation ────────────────────────────────────────────

@pytest.mark.parametrize("raw,expected", [
    ("Add", Operation.ADD),
    ("add", Operation.ADD),
    ("  MULTIPLY ", Operation.MULTIPLY),
    (Operation.DIVIDE, Operation.DIVIDE),
    (0, Operation.ADD),
    (1, Operation.SUBTRACT),
    (2, Operation.MULTIPLY),
    (3, Operation.DIVIDE),
    ("3", Operation.DIVIDE),
])
def test_parse_operation_accepts_names_and_codes(raw, expected):
    assert parse_operation(raw) is expected


@pytest.mark.parametrize("raw", ["Power", "", 4, -1, "9", True, 2.0, None, [0]])
def test_parse_operation_rejects_everything_else(raw):
    with pytest.raises(UnsupportedOperationError):
        parse_operation(raw)
