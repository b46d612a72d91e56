"""
Checked unsigned 64-bit arithmetic.

The ledger program stores every reserve, supply and counter as a u64 and uses
checked operations throughout. These helpers reproduce that domain on Python
ints: any result outside [0, U64_MAX] raises, by default, `MathOverflow`.
Callers that classify an underflow differently (reserve-side subtraction is
`InsufficientLiquidity`) pass the error type explicitly.
"""

from __future__ import annotations

from typing import Type

from ...errors import MathOverflow, PoolError


U64_MAX = (1 << 64) - 1


def require_u64(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > U64_MAX:
        raise MathOverflow(f"{name} outside u64 range: {value}")
    return value


def checked_add(a: int, b: int, *, what: str = "add", error: Type[PoolError] = MathOverflow) -> int:
    out = a + b
    if out > U64_MAX:
        raise error(f"{what}: {a} + {b} overflows u64")
    return out


def checked_sub(a: int, b: int, *, what: str = "sub", error: Type[PoolError] = MathOverflow) -> int:
    if b > a:
        raise error(f"{what}: {a} - {b} underflows")
    return a - b


def checked_mul(a: int, b: int, *, what: str = "mul", error: Type[PoolError] = MathOverflow) -> int:
    out = a * b
    if out > U64_MAX:
        raise error(f"{what}: {a} * {b} overflows u64")
    return out


def checked_div(a: int, b: int, *, what: str = "div", error: Type[PoolError] = MathOverflow) -> int:
    """Floor division; division by zero is an arithmetic failure, like `checked_div` on u64."""
    if b == 0:
        raise error(f"{what}: division by zero")
    return a // b


def checked_div_ceil(a: int, b: int, *, what: str = "div_ceil", error: Type[PoolError] = MathOverflow) -> int:
    if b == 0:
        raise error(f"{what}: division by zero")
    return (a + b - 1) // b
