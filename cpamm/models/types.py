"""Shared type definitions for API models.

Amounts travel as uint64. Clients may send them as JSON integers or as
decimal strings (for runtimes without 64-bit integers); both parse to int.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from cpamm.constants import UINT64_MAX

UINT16_MAX = 2**16 - 1


def validate_uint64(value: Any) -> int:
    """Validate that a value is a valid uint64.

    Args:
        value: Value to validate (int or decimal string)

    Returns:
        The value as int

    Raises:
        ValueError: If value is not a non-negative integer within uint64 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint64 must be an integer, got bool")

    if isinstance(value, str):
        try:
            value = int(value, 10)
        except ValueError as err:
            raise ValueError(f"Uint64 must be a decimal integer string: '{value}'") from err

    if not isinstance(value, int):
        raise ValueError(f"Uint64 must be string or int, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"Uint64 cannot be negative: {value}")
    if value > UINT64_MAX:
        raise ValueError(f"Uint64 overflow: {value} > 2^64-1")

    return value


# 64-bit unsigned integer (int or decimal string on the wire)
Uint64 = Annotated[
    int,
    BeforeValidator(validate_uint64),
    Field(description="64-bit unsigned integer"),
]

# Fee in basis points, stored as uint16; the engine enforces the pool maximum
FeeBps = Annotated[int, Field(ge=0, le=UINT16_MAX, description="Fee in basis points")]

# Token decimals (uint8)
Decimals = Annotated[int, Field(ge=0, le=255)]

# Identifiers: non-empty, no whitespace, no ':' (reserved for derived ids)
Identifier = Annotated[str, Field(min_length=1, max_length=128, pattern=r"^[^\s:]+$")]
