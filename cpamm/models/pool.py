"""Pool configuration and state."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from cpamm.constants import FEE_DENOMINATOR, lp_token, pool_account


class LockState(str, Enum):
    """Whether the pool accepts deposits, withdrawals and swaps."""

    UNLOCKED = "unlocked"
    LOCKED = "locked"


@dataclass(frozen=True)
class PoolConfig:
    """Per-pool parameters fixed at initialize.

    Only `lock_state` changes afterwards, and only through `with_lock_state`.
    """

    pool_id: str
    token_x: str
    token_y: str
    # Fee in basis points (30 = 0.3%)
    fee_bps: int
    decimals_x: int = 0
    decimals_y: int = 0
    # Account allowed to lock/unlock the pool, if any
    authority: str | None = None
    lock_state: LockState = LockState.UNLOCKED

    @property
    def locked(self) -> bool:
        return self.lock_state is LockState.LOCKED

    @property
    def fee_multiplier(self) -> int:
        """Fee multiplier for AMM math (10000 - fee_bps).

        For 30 bps (0.3%), this returns 9970.
        """
        return FEE_DENOMINATOR - self.fee_bps

    @property
    def lp_token(self) -> str:
        return lp_token(self.pool_id)

    @property
    def custody_account(self) -> str:
        return pool_account(self.pool_id)

    def with_lock_state(self, lock_state: LockState) -> PoolConfig:
        return replace(self, lock_state=lock_state)

    def tokens_for(self, x_to_y: bool) -> tuple[str, str]:
        """Get tokens ordered as (token_in, token_out)."""
        if x_to_y:
            return self.token_x, self.token_y
        return self.token_y, self.token_x


@dataclass(frozen=True)
class PoolSnapshot:
    """Immutable view of a pool's reserves and claim supply.

    Read exactly once at the start of every operation and handed to the
    quote functions; nothing re-reads the live pool mid-calculation.
    """

    reserve_x: int = 0
    reserve_y: int = 0
    supply: int = 0

    @property
    def is_empty(self) -> bool:
        return self.reserve_x == 0 and self.reserve_y == 0

    @property
    def has_liquidity(self) -> bool:
        return self.reserve_x > 0 and self.reserve_y > 0

    def reserves_for(self, x_to_y: bool) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        if x_to_y:
            return self.reserve_x, self.reserve_y
        return self.reserve_y, self.reserve_x


@dataclass
class Pool:
    """A pool's config plus its live reserves and LP supply.

    Mutated only by PoolEngine while it holds the pool's writer lock.
    """

    config: PoolConfig
    reserve_x: int = 0
    reserve_y: int = 0
    lp_supply: int = 0

    @property
    def pool_id(self) -> str:
        return self.config.pool_id

    def snapshot(self) -> PoolSnapshot:
        return PoolSnapshot(
            reserve_x=self.reserve_x,
            reserve_y=self.reserve_y,
            supply=self.lp_supply,
        )

    def apply(self, after: PoolSnapshot) -> None:
        """Overwrite reserves and supply together."""
        self.reserve_x = after.reserve_x
        self.reserve_y = after.reserve_y
        self.lp_supply = after.supply

    def to_record(self) -> dict[str, object]:
        """Persisted layout of the pool."""
        return {
            "poolId": self.config.pool_id,
            "tokenX": self.config.token_x,
            "tokenY": self.config.token_y,
            "feeBps": self.config.fee_bps,
            "locked": self.config.locked,
            "reserveX": self.reserve_x,
            "reserveY": self.reserve_y,
            "lpSupply": self.lp_supply,
        }
