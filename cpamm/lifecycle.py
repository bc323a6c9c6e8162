"""Pool lifecycle: creation, authority checks and lock state."""

from __future__ import annotations

import structlog

from cpamm.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from cpamm.constants import ID_SEPARATOR
from cpamm.errors import (
    InvalidFee,
    InvalidPrecision,
    InvalidToken,
    NoAuthority,
    PoolLocked,
    Unauthorized,
)
from cpamm.models.pool import LockState, Pool, PoolConfig

logger = structlog.get_logger()


def validate_pool_params(
    token_x: str,
    token_y: str,
    fee_bps: int,
    decimals_x: int,
    decimals_y: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> None:
    """Check initialize parameters, fee first, then tokens, then precision.

    Raises:
        InvalidFee: If fee_bps is negative or above config.max_fee_bps
        InvalidToken: If a token id is empty, contains ID_SEPARATOR (reserved for
            pool accounts and LP tokens) or tokenX == tokenY
        InvalidPrecision: If either token has more than config.max_token_decimals
    """
    if not 0 <= fee_bps <= config.max_fee_bps:
        raise InvalidFee(f"fee_bps must be in [0, {config.max_fee_bps}]: {fee_bps}")
    if not token_x or not token_y:
        raise InvalidToken("Token ids must be non-empty")
    for token in (token_x, token_y):
        if ID_SEPARATOR in token:
            raise InvalidToken(f"Token id may not contain '{ID_SEPARATOR}': {token}")
    if token_x == token_y:
        raise InvalidToken(f"tokenX and tokenY must differ: {token_x}")
    for token, decimals in ((token_x, decimals_x), (token_y, decimals_y)):
        if not 0 <= decimals <= config.max_token_decimals:
            raise InvalidPrecision(
                f"{token} has {decimals} decimals, max is {config.max_token_decimals}"
            )


def create_pool(
    pool_id: str,
    token_x: str,
    token_y: str,
    fee_bps: int,
    decimals_x: int = 6,
    decimals_y: int = 6,
    authority: str | None = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> Pool:
    """Build an empty, unlocked pool after validating its parameters."""
    validate_pool_params(token_x, token_y, fee_bps, decimals_x, decimals_y, config)
    return Pool(
        config=PoolConfig(
            pool_id=pool_id,
            token_x=token_x,
            token_y=token_y,
            fee_bps=fee_bps,
            decimals_x=decimals_x,
            decimals_y=decimals_y,
            authority=authority,
        )
    )


def require_authority(config: PoolConfig, caller: str) -> None:
    """Check that `caller` may change pool settings.

    Raises:
        NoAuthority: If the pool was created without an authority
        Unauthorized: If caller is not the pool authority
    """
    if config.authority is None:
        raise NoAuthority(f"Pool {config.pool_id} has no authority")
    if config.authority != caller:
        raise Unauthorized(f"{caller} is not the authority of pool {config.pool_id}")


def require_unlocked(config: PoolConfig) -> None:
    """Raises PoolLocked if the pool is locked."""
    if config.lock_state is LockState.LOCKED:
        raise PoolLocked(f"Pool {config.pool_id} is locked")


def set_lock_state(pool: Pool, caller: str, lock_state: LockState) -> PoolConfig:
    """Switch a pool's lock state on behalf of its authority.

    Setting the current state again is accepted and changes nothing.
    """
    require_authority(pool.config, caller)
    previous = pool.config.lock_state
    pool.config = pool.config.with_lock_state(lock_state)
    logger.info(
        "pool_lock_state_changed",
        pool_id=pool.pool_id,
        previous=previous.value,
        current=lock_state.value,
        caller=caller,
    )
    return pool.config
