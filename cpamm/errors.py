"""Pool engine error classes.

Every failure the engine can report is a PoolError subclass carrying an
ErrorKind. Callers branch on `error.kind`; the HTTP layer surfaces the kind
verbatim so slippage rejections stay distinguishable from real faults.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Stable identifiers for every pool engine failure."""

    # Validation (caller-correctable)
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_FEE = "InvalidFee"
    INVALID_TOKEN = "InvalidToken"
    INVALID_PRECISION = "InvalidPrecision"

    # State-dependent
    POOL_LOCKED = "PoolLocked"
    ZERO_BALANCE = "ZeroBalance"
    INSUFFICIENT_BALANCE = "InsufficientBalance"

    # Economic / safety
    SLIPPAGE_EXCEEDED = "SlippageExceeded"
    LIQUIDITY_BELOW_MINIMUM = "LiquidityBelowMinimum"

    # Arithmetic
    OVERFLOW = "Overflow"
    UNDERFLOW = "Underflow"

    # Authority
    UNAUTHORIZED = "Unauthorized"
    NO_AUTHORITY = "NoAuthority"

    # Registry
    POOL_NOT_FOUND = "PoolNotFound"
    POOL_ALREADY_EXISTS = "PoolAlreadyExists"

    # Custody / commit
    CUSTODY_FAILURE = "CustodyFailure"
    INVARIANT_VIOLATION = "InvariantViolation"


class PoolError(Exception):
    """Base error for pool engine operations."""

    kind: ClassVar[ErrorKind]
    default_message: ClassVar[str] = "Pool operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, str]:
        """Error payload as returned by the HTTP API."""
        return {"error": self.kind.value, "detail": self.message}


class InvalidAmount(PoolError):
    kind = ErrorKind.INVALID_AMOUNT
    default_message = "Invalid amount provided."


class InvalidFee(PoolError):
    kind = ErrorKind.INVALID_FEE
    default_message = "Fee exceeds maximum allowed."


class InvalidToken(PoolError):
    kind = ErrorKind.INVALID_TOKEN
    default_message = "Invalid token provided."


class InvalidPrecision(PoolError):
    kind = ErrorKind.INVALID_PRECISION
    default_message = "Invalid precision value."


class PoolLocked(PoolError):
    kind = ErrorKind.POOL_LOCKED
    default_message = "This pool is locked."


class ZeroBalance(PoolError):
    kind = ErrorKind.ZERO_BALANCE
    default_message = "Zero balance not allowed."


class InsufficientBalance(PoolError):
    kind = ErrorKind.INSUFFICIENT_BALANCE
    default_message = "Insufficient balance for operation."


class SlippageExceeded(PoolError):
    kind = ErrorKind.SLIPPAGE_EXCEEDED
    default_message = "Slippage tolerance exceeded."


class LiquidityBelowMinimum(PoolError):
    kind = ErrorKind.LIQUIDITY_BELOW_MINIMUM
    default_message = "Actual liquidity is less than minimum required."


class Overflow(PoolError, ArithmeticError):
    """Result does not fit the integer width it is computed in."""

    kind = ErrorKind.OVERFLOW
    default_message = "Mathematical overflow detected."


class Underflow(PoolError, ArithmeticError):
    """Subtraction would produce a negative result."""

    kind = ErrorKind.UNDERFLOW
    default_message = "Mathematical underflow detected."


class DivisionByZero(ZeroBalance, ArithmeticError):
    """Division by an empty reserve or supply.

    Reported as ZeroBalance: a zero divisor always means an empty pool side.
    """


class Unauthorized(PoolError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized access attempt."


class NoAuthority(PoolError):
    kind = ErrorKind.NO_AUTHORITY
    default_message = "No authority set for this pool."


class PoolNotFound(PoolError):
    kind = ErrorKind.POOL_NOT_FOUND
    default_message = "No liquidity pool."


class PoolAlreadyExists(PoolError):
    kind = ErrorKind.POOL_ALREADY_EXISTS
    default_message = "Pool already initialized."


class CustodyFailure(PoolError):
    """The custody ledger refused a transfer, mint or burn."""

    kind = ErrorKind.CUSTODY_FAILURE
    default_message = "Custody step failed."


class InvariantViolation(PoolError):
    """A committed trade would shrink the constant product."""

    kind = ErrorKind.INVARIANT_VIOLATION
    default_message = "Constant-product invariant violated."
