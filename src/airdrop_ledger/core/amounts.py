# src/airdrop_ledger/core/amounts.py

"""Fixed-width integer ranges used by token contracts (u32 counts, u128 balances)."""

from __future__ import annotations

from typing import Any

from .errors import InvalidAmount, Overflow

U32_MAX = 2**32 - 1
U128_MAX = 2**128 - 1


def parse_u128(value: Any, *, field: str = "amount") -> int:
    """
    Accept an int or a decimal string (token contracts serialize u128 as strings).
    Rejects bools, floats, negatives and anything above u128::MAX.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"{field} must be an integer, got bool")
    if isinstance(value, int):
        n = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        # ASCII only: str.isdigit() also accepts superscripts int() cannot parse.
        n = int(value.strip())
    else:
        raise InvalidAmount(f"{field} must be a non-negative integer, got {value!r}")
    if n < 0:
        raise InvalidAmount(f"{field} must be non-negative, got {n}")
    if n > U128_MAX:
        raise Overflow(f"{field} exceeds u128::MAX")
    return n


def positive_u128(value: Any, *, field: str = "amount") -> int:
    n = parse_u128(value, field=field)
    if n == 0:
        raise InvalidAmount(f"{field} must be positive")
    return n


def checked_mul_u128(a: int, b: int) -> int:
    """Multiply two u128 values; raise Overflow instead of wrapping."""
    product = a * b
    if product > U128_MAX:
        raise Overflow(f"{a} * {b} overflows u128")
    return product


def to_db(n: int) -> str:
    # SQLite INTEGER is 64-bit; u128 amounts are stored as decimal text.
    return str(int(n))


def from_db(raw: Any) -> int:
    if raw is None or raw == "":
        return 0
    return int(raw)
