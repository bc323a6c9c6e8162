"""Pool engine: validation and atomic commit for every pool operation.

PoolEngine is the only writer of pool state. Each operation:
1. takes the pool's writer lock,
2. validates the caller's inputs and the pool's state,
3. reads one immutable PoolSnapshot and quotes against it,
4. checks the caller's slippage bound,
5. stages custody steps plus the new state in a UnitOfWork and commits.

Any failure before step 5 leaves everything untouched; a failure during step
5 is rolled back by the UnitOfWork. Errors are raised to the caller as-is.
"""

from __future__ import annotations

import threading
from dataclasses import replace

import structlog

from cpamm import quote
from cpamm.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from cpamm.constants import UINT64_MAX
from cpamm.errors import (
    ErrorKind,
    InsufficientBalance,
    InvalidAmount,
    InvariantViolation,
    LiquidityBelowMinimum,
    PoolError,
    SlippageExceeded,
    ZeroBalance,
)
from cpamm.ledger.base import CustodyLedger
from cpamm.ledger.memory import InMemoryLedger
from cpamm.lifecycle import create_pool, require_unlocked, set_lock_state
from cpamm.models.pool import LockState, Pool, PoolConfig, PoolSnapshot
from cpamm.registry import PoolRegistry
from cpamm.unit_of_work import UnitOfWork

logger = structlog.get_logger()

# Rejections callers are expected to hit in normal use
_ECONOMIC_ERRORS = frozenset({ErrorKind.SLIPPAGE_EXCEEDED, ErrorKind.LIQUIDITY_BELOW_MINIMUM})
# Rejections that point at a broken ledger or broken math
_FAULT_ERRORS = frozenset({ErrorKind.CUSTODY_FAILURE, ErrorKind.INVARIANT_VIOLATION})


def _require_amount(name: str, value: int, *, allow_zero: bool = False) -> int:
    """Validate a caller-supplied uint64 amount.

    Raises:
        InvalidAmount: If value is not an int, is out of uint64 range, or is
            zero when allow_zero is False
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT64_MAX:
        raise InvalidAmount(f"{name} out of uint64 range: {value}")
    if value == 0 and not allow_zero:
        raise InvalidAmount(f"{name} must be positive")
    return value


class PoolEngine:
    """Orchestrates initialize, deposit, withdraw, swap and lock/unlock.

    Args:
        ledger: Custody ledger holding token and LP balances. If None, uses
            a fresh InMemoryLedger.
        registry: Pool storage. If None, starts with an empty registry.
        config: Validation limits. If None, uses DEFAULT_ENGINE_CONFIG.
    """

    def __init__(
        self,
        ledger: CustodyLedger | None = None,
        registry: PoolRegistry | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.ledger: CustodyLedger = ledger if ledger is not None else InMemoryLedger()
        self.registry = registry if registry is not None else PoolRegistry()
        self.config = config or DEFAULT_ENGINE_CONFIG

    # --- Lifecycle ---

    def initialize(
        self,
        pool_id: str,
        token_x: str,
        token_y: str,
        fee_bps: int,
        decimals_x: int = 6,
        decimals_y: int = 6,
        authority: str | None = None,
    ) -> PoolConfig:
        """Create a pool with zero reserves and supply.

        Raises:
            InvalidFee: If fee_bps exceeds the configured maximum
            InvalidToken: If token_x == token_y
            InvalidPrecision: If a token has too many decimals
            PoolAlreadyExists: If pool_id is already registered
        """
        try:
            pool = create_pool(
                pool_id,
                token_x,
                token_y,
                fee_bps,
                decimals_x=decimals_x,
                decimals_y=decimals_y,
                authority=authority,
                config=self.config,
            )
            self.registry.add(pool)
        except PoolError as err:
            self._log_rejection("initialize", pool_id, err)
            raise

        logger.info(
            "pool_initialized",
            pool_id=pool_id,
            token_x=token_x,
            token_y=token_y,
            fee_bps=fee_bps,
            lp_token=pool.config.lp_token,
            lp_decimals=self.config.lp_decimals,
            has_authority=authority is not None,
        )
        return pool.config

    def lock(self, pool_id: str, caller: str) -> PoolConfig:
        """Disable deposits, withdrawals and swaps (pool authority only)."""
        return self._set_lock_state(pool_id, caller, LockState.LOCKED)

    def unlock(self, pool_id: str, caller: str) -> PoolConfig:
        """Re-enable a locked pool (pool authority only)."""
        return self._set_lock_state(pool_id, caller, LockState.UNLOCKED)

    def _set_lock_state(self, pool_id: str, caller: str, lock_state: LockState) -> PoolConfig:
        try:
            with self.registry.writer(pool_id) as pool:
                return set_lock_state(pool, caller, lock_state)
        except PoolError as err:
            self._log_rejection(f"set_{lock_state.value}", pool_id, err)
            raise

    # --- Queries ---

    def get_pool(self, pool_id: str) -> Pool:
        """Detached copy of a pool, read under its writer lock.

        Changing the copy does not affect the registered pool.
        """
        with self.registry.writer(pool_id) as pool:
            return replace(pool)

    def record(self, pool_id: str) -> dict[str, object]:
        """Persisted layout of a pool, read under its writer lock."""
        with self.registry.writer(pool_id) as pool:
            return pool.to_record()

    def snapshot(self, pool_id: str) -> PoolSnapshot:
        with self.registry.writer(pool_id) as pool:
            return pool.snapshot()

    def preview_deposit(self, pool_id: str, amount_x: int, amount_y: int) -> int:
        """Quote a deposit against the current state without committing."""
        return quote.quote_deposit(
            self.snapshot(pool_id), amount_x, amount_y, self.config.minimum_liquidity
        )

    def preview_withdraw(self, pool_id: str, lp_amount: int) -> tuple[int, int]:
        """Quote a withdrawal against the current state without committing."""
        snap = self.snapshot(pool_id)
        return quote.quote_withdraw(lp_amount, snap.reserve_x, snap.reserve_y, snap.supply)

    def preview_swap(self, pool_id: str, x_to_y: bool, amount_in: int) -> int:
        """Quote a swap against the current state without committing."""
        with self.registry.writer(pool_id) as pool:
            fee_bps = pool.config.fee_bps
            reserve_in, reserve_out = pool.snapshot().reserves_for(x_to_y)
        return quote.quote_swap(amount_in, reserve_in, reserve_out, fee_bps)

    # --- Operations ---

    def deposit(
        self,
        pool_id: str,
        amount_x: int,
        amount_y: int,
        min_lp: int,
        caller: str,
    ) -> int:
        """Add liquidity and mint LP units to the caller.

        Returns:
            LP units minted

        Raises:
            InvalidAmount: If an amount is zero or not a uint64
            LiquidityBelowMinimum: If min_lp is zero or the quote rounds to nothing
            PoolLocked: If the pool is locked
            InsufficientBalance: If the caller cannot cover either amount
            SlippageExceeded: If fewer than min_lp units would be minted
            CustodyFailure: If the ledger refused a step (rolled back)
        """
        try:
            with self.registry.writer(pool_id) as pool:
                return self._deposit(pool, amount_x, amount_y, min_lp, caller)
        except PoolError as err:
            self._log_rejection("deposit", pool_id, err, caller=caller)
            raise

    def _deposit(
        self, pool: Pool, amount_x: int, amount_y: int, min_lp: int, caller: str
    ) -> int:
        cfg = pool.config
        _require_amount("amount_x", amount_x)
        _require_amount("amount_y", amount_y)
        _require_amount("min_lp", min_lp, allow_zero=True)
        if min_lp == 0:
            raise LiquidityBelowMinimum("min_lp must be positive")
        require_unlocked(cfg)
        self._require_balance(caller, cfg.token_x, amount_x)
        self._require_balance(caller, cfg.token_y, amount_y)

        snap = pool.snapshot()
        first_deposit = snap.is_empty
        lp_out = quote.quote_deposit(snap, amount_x, amount_y, self.config.minimum_liquidity)
        if lp_out < min_lp:
            raise SlippageExceeded(f"Deposit mints {lp_out} LP, caller requires {min_lp}")
        after = quote.after_deposit(snap, amount_x, amount_y, lp_out)

        uow = UnitOfWork(self.ledger, pool)
        uow.transfer(cfg.token_x, caller, cfg.custody_account, amount_x)
        uow.transfer(cfg.token_y, caller, cfg.custody_account, amount_y)
        uow.mint(cfg.lp_token, caller, lp_out)
        uow.set_state(after)
        uow.commit()

        logger.info(
            "deposit_committed",
            pool_id=pool.pool_id,
            caller=caller,
            first_deposit=first_deposit,
            amount_x=amount_x,
            amount_y=amount_y,
            lp_minted=lp_out,
            lp_supply=after.supply,
        )
        return lp_out

    def withdraw(
        self,
        pool_id: str,
        lp_amount: int,
        min_x: int,
        min_y: int,
        caller: str,
    ) -> tuple[int, int]:
        """Burn LP units and release a proportional share of both reserves.

        Returns:
            Tuple of (amount_x, amount_y) released to the caller

        Raises:
            InvalidAmount: If lp_amount is zero or an amount is not a uint64
            PoolLocked: If the pool is locked
            InsufficientBalance: If the caller holds fewer than lp_amount LP units
            ZeroBalance: If the pool has no reserves or no supply
            LiquidityBelowMinimum: If either side rounds down to zero
            SlippageExceeded: If either amount is below its minimum
            CustodyFailure: If the ledger refused a step (rolled back)
        """
        try:
            with self.registry.writer(pool_id) as pool:
                return self._withdraw(pool, lp_amount, min_x, min_y, caller)
        except PoolError as err:
            self._log_rejection("withdraw", pool_id, err, caller=caller)
            raise

    def _withdraw(
        self, pool: Pool, lp_amount: int, min_x: int, min_y: int, caller: str
    ) -> tuple[int, int]:
        cfg = pool.config
        _require_amount("lp_amount", lp_amount)
        _require_amount("min_x", min_x, allow_zero=True)
        _require_amount("min_y", min_y, allow_zero=True)
        require_unlocked(cfg)
        self._require_balance(caller, cfg.lp_token, lp_amount)

        snap = pool.snapshot()
        if not snap.has_liquidity or snap.supply == 0:
            raise ZeroBalance(f"Pool {pool.pool_id} has no liquidity")

        amount_x, amount_y = quote.quote_withdraw(
            lp_amount, snap.reserve_x, snap.reserve_y, snap.supply
        )
        if amount_x < min_x or amount_y < min_y:
            raise SlippageExceeded(
                f"Withdraw releases ({amount_x}, {amount_y}), caller requires ({min_x}, {min_y})"
            )
        after = quote.after_withdraw(snap, lp_amount, amount_x, amount_y)

        # Burn before releasing funds so the same LP balance cannot be reused
        uow = UnitOfWork(self.ledger, pool)
        uow.burn(cfg.lp_token, caller, lp_amount)
        uow.transfer(cfg.token_x, cfg.custody_account, caller, amount_x)
        uow.transfer(cfg.token_y, cfg.custody_account, caller, amount_y)
        uow.set_state(after)
        uow.commit()

        logger.info(
            "withdraw_committed",
            pool_id=pool.pool_id,
            caller=caller,
            lp_burned=lp_amount,
            amount_x=amount_x,
            amount_y=amount_y,
            lp_supply=after.supply,
        )
        return amount_x, amount_y

    def swap(
        self,
        pool_id: str,
        x_to_y: bool,
        amount_in: int,
        min_out: int,
        caller: str,
    ) -> int:
        """Trade exactly `amount_in` of one token for at least `min_out` of the other.

        Args:
            pool_id: Pool to trade against
            x_to_y: True to sell tokenX for tokenY, False for the reverse
            amount_in: Exact input amount
            min_out: Minimum acceptable output (slippage bound)
            caller: Trader account

        Returns:
            Output amount sent to the caller

        Raises:
            InvalidAmount: If amount_in or min_out is zero or not a uint64
            PoolLocked: If the pool is locked
            ZeroBalance: If either reserve is empty
            InsufficientBalance: If the caller cannot cover amount_in
            SlippageExceeded: If the output is zero or below min_out
            InvariantViolation: If the trade would shrink the constant product
            CustodyFailure: If the ledger refused a step (rolled back)
        """
        try:
            with self.registry.writer(pool_id) as pool:
                return self._swap(pool, x_to_y, amount_in, min_out, caller)
        except PoolError as err:
            self._log_rejection("swap", pool_id, err, caller=caller)
            raise

    def _swap(self, pool: Pool, x_to_y: bool, amount_in: int, min_out: int, caller: str) -> int:
        cfg = pool.config
        _require_amount("amount_in", amount_in)
        _require_amount("min_out", min_out)
        require_unlocked(cfg)

        snap = pool.snapshot()
        if not snap.has_liquidity:
            raise ZeroBalance(f"Pool {pool.pool_id} has no liquidity")

        token_in, token_out = cfg.tokens_for(x_to_y)
        self._require_balance(caller, token_in, amount_in)

        reserve_in, reserve_out = snap.reserves_for(x_to_y)
        amount_out = quote.quote_swap(amount_in, reserve_in, reserve_out, cfg.fee_bps)
        if amount_out < min_out:
            raise SlippageExceeded(f"Swap yields {amount_out}, caller requires {min_out}")
        if not quote.check_swap_invariant(reserve_in, reserve_out, amount_in, amount_out):
            raise InvariantViolation(
                f"Swap {amount_in} -> {amount_out} shrinks k on reserves "
                f"({reserve_in}, {reserve_out})"
            )
        after = quote.after_swap(snap, x_to_y, amount_in, amount_out)

        uow = UnitOfWork(self.ledger, pool)
        uow.transfer(token_in, caller, cfg.custody_account, amount_in)
        uow.transfer(token_out, cfg.custody_account, caller, amount_out)
        uow.set_state(after)
        uow.commit()

        logger.info(
            "swap_committed",
            pool_id=pool.pool_id,
            caller=caller,
            x_to_y=x_to_y,
            amount_in=amount_in,
            amount_out=amount_out,
            reserve_x=after.reserve_x,
            reserve_y=after.reserve_y,
        )
        return amount_out

    # --- Helpers ---

    def _require_balance(self, account: str, token: str, amount: int) -> None:
        balance = self.ledger.get_balance(account, token)
        if balance < amount:
            raise InsufficientBalance(f"{account} holds {balance} {token}, needs {amount}")

    @staticmethod
    def _log_rejection(
        operation: str, pool_id: str, err: PoolError, caller: str | None = None
    ) -> None:
        if err.kind in _FAULT_ERRORS:
            log = logger.error
        elif err.kind in _ECONOMIC_ERRORS:
            log = logger.warning
        else:
            log = logger.debug
        log(
            f"{operation}_rejected",
            pool_id=pool_id,
            caller=caller,
            error=err.kind.value,
            detail=err.message,
        )


_default_engine: PoolEngine | None = None
_default_engine_lock = threading.Lock()


def get_default_engine() -> PoolEngine:
    """Process-wide engine backed by an in-memory ledger.

    Configuration is read from the environment on first use (see
    EngineConfig.from_env).
    """
    global _default_engine
    with _default_engine_lock:
        if _default_engine is None:
            _default_engine = PoolEngine(config=EngineConfig.from_env())
            logger.info("default_engine_created", max_fee_bps=_default_engine.config.max_fee_bps)
        return _default_engine
