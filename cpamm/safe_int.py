"""Checked integer wrapper for pool arithmetic.

Reserves, supply and amounts are uint64. Every product is computed in a
128-bit intermediate; results are narrowed back to 64 bits on the way out.
SafeInt makes each of those steps fail loudly instead of wrapping:
- Subtraction below zero raises Underflow
- Any intermediate above 2^128-1 raises Overflow
- Division by zero raises DivisionByZero (a ZeroBalance)
- Narrowing a value above 2^64-1 raises Overflow

Usage pattern:
    from cpamm.safe_int import S

    def proportional(amount: int, reserve: int, supply: int) -> int:
        # Wrap at entry
        sa, sr, ss = S(amount), S(reserve), S(supply)

        # Natural arithmetic - automatically checked
        result = (sa * ss) // sr

        # Narrow at exit
        return result.to_u64()
"""

from __future__ import annotations

import math

from cpamm.constants import UINT64_MAX, UINT128_MAX
from cpamm.errors import DivisionByZero, Overflow, Underflow


def _check_wide(value: int, op: str) -> int:
    if value > UINT128_MAX:
        raise Overflow(f"Overflow: {op} exceeds 128 bits")
    return value


class SafeInt:
    """Non-negative integer with checked 128-bit arithmetic.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        """Create a SafeInt from an integer or another SafeInt.

        Raises:
            TypeError: If value is not an int (bool is rejected too)
            Underflow: If value is negative
            Overflow: If value exceeds 128 bits
        """
        if isinstance(value, SafeInt):
            self._value = value._value
            return
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        if value < 0:
            raise Underflow(f"Underflow: negative value {value}")
        self._value = _check_wide(value, str(value))

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        """Add two values.

        Raises:
            Overflow: If the sum exceeds 128 bits
        """
        other_val = _extract_value(other)
        return SafeInt(_check_wide(self._value + other_val, f"{self._value} + {other_val}"))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other) + self

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        return SafeInt(other) - self

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        """Multiply two values.

        Raises:
            Overflow: If the product exceeds 128 bits
        """
        other_val = _extract_value(other)
        return SafeInt(_check_wide(self._value * other_val, f"{self._value} * {other_val}"))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other) * self

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division (rounds down).

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        """True if non-zero."""
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def isqrt(self) -> SafeInt:
        """Integer square root, rounded down (exact, no floating point)."""
        return SafeInt(math.isqrt(self._value))

    def min(self, other: SafeInt | int) -> SafeInt:
        """Return minimum of self and other."""
        return SafeInt(min(self._value, _extract_value(other)))

    def to_u64(self) -> int:
        """Narrow to a uint64.

        Raises:
            Overflow: If value exceeds 2^64-1
        """
        if self._value > UINT64_MAX:
            raise Overflow(f"Value exceeds uint64 max: {self._value}")
        return self._value

    def is_u64(self) -> bool:
        """Check if value fits in uint64 without raising."""
        return self._value <= UINT64_MAX

    @classmethod
    def zero(cls) -> SafeInt:
        """Create a SafeInt with value 0."""
        return cls(0)


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return SafeInt(x)._value


def require_u64(value: int, name: str = "value") -> int:
    """Validate that an external input is a uint64.

    Raises:
        TypeError: If value is not an int
        Underflow: If value is negative
        Overflow: If value exceeds 2^64-1
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise Underflow(f"{name} cannot be negative: {value}")
    if value > UINT64_MAX:
        raise Overflow(f"{name} exceeds uint64 max: {value}")
    return value


# Convenience alias for concise code
S = SafeInt
