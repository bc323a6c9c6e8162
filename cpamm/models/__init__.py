"""Pool state and API models."""

from cpamm.models.pool import LockState, Pool, PoolConfig, PoolSnapshot
from cpamm.models.requests import (
    AuthorityRequest,
    DepositRequest,
    DepositResponse,
    ErrorResponse,
    InitializeRequest,
    PoolResponse,
    SwapRequest,
    SwapResponse,
    WithdrawRequest,
    WithdrawResponse,
)
from cpamm.models.types import Uint64, validate_uint64

__all__ = [
    # Pool state
    "LockState",
    "Pool",
    "PoolConfig",
    "PoolSnapshot",
    # Requests
    "InitializeRequest",
    "DepositRequest",
    "WithdrawRequest",
    "SwapRequest",
    "AuthorityRequest",
    # Responses
    "PoolResponse",
    "DepositResponse",
    "WithdrawResponse",
    "SwapResponse",
    "ErrorResponse",
    # Types
    "Uint64",
    "validate_uint64",
]
