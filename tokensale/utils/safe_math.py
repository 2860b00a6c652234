"""Checked arithmetic on 256-bit unsigned integers.

Every ledger counter of the sale is a uint256. Python integers never overflow,
so these helpers enforce the bounds explicitly and fail the running step
instead of producing a value the ledger could not represent.
"""

from tokensale.exception import ArithmeticOverflow

U256_MAX = 2**256 - 1


def _check(value: int) -> int:
    if value < 0:
        raise ArithmeticOverflow('Arithmetic underflow')
    if value > U256_MAX:
        raise ArithmeticOverflow('Arithmetic overflow')
    return value


def add(a: int, b: int) -> int:
    return _check(a + b)


def sub(a: int, b: int) -> int:
    return _check(a - b)


def mul(a: int, b: int) -> int:
    return _check(a * b)


def mul_div(a: int, b: int, denominator: int) -> int:
    """Return floor(a * b / denominator), checking the intermediate product."""
    if denominator == 0:
        raise ArithmeticOverflow('Division by zero')
    return _check(mul(a, b) // denominator)
