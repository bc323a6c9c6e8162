"""Quote engine: constant-product pricing and LP accounting.

Every function here is pure. Inputs are plain ints (a PoolSnapshot where a
whole pool view is needed), outputs are plain ints, and nothing touches
stored state, so identical arguments always give identical results.

Arithmetic goes through SafeInt: intermediates are bounded to 128 bits and
results narrowed to uint64, so a bad input fails with Overflow/Underflow
instead of wrapping. All divisions round down, which always favors the pool.

Formulas:
    first deposit:       lp = isqrt(x * y) - MINIMUM_LIQUIDITY
    subsequent deposit:  lp = min(x * supply // rx, y * supply // ry)
    withdraw:            out_i = lp * r_i // supply
    swap:                out = in * (10000 - fee) * r_out
                               // (r_in * 10000 + in * (10000 - fee))
"""

from __future__ import annotations

from cpamm.constants import FEE_DENOMINATOR, MINIMUM_LIQUIDITY
from cpamm.errors import (
    InsufficientBalance,
    LiquidityBelowMinimum,
    SlippageExceeded,
    Underflow,
    ZeroBalance,
)
from cpamm.models.pool import PoolSnapshot
from cpamm.safe_int import S, require_u64


def quote_first_deposit(
    amount_x: int,
    amount_y: int,
    minimum_liquidity: int = MINIMUM_LIQUIDITY,
) -> int:
    """LP units minted by the deposit that bootstraps an empty pool.

    The geometric mean does not depend on the deposit ratio. The first
    `minimum_liquidity` units are withheld forever and never minted.

    Args:
        amount_x: Amount of tokenX deposited
        amount_y: Amount of tokenY deposited
        minimum_liquidity: Units withheld from the mint (default 1000)

    Returns:
        LP units for the depositor

    Raises:
        LiquidityBelowMinimum: If isqrt(amount_x * amount_y) <= minimum_liquidity
    """
    require_u64(amount_x, "amount_x")
    require_u64(amount_y, "amount_y")

    root = (S(amount_x) * S(amount_y)).isqrt()
    if root <= minimum_liquidity:
        raise LiquidityBelowMinimum(
            f"sqrt({amount_x} * {amount_y}) = {root.value} <= {minimum_liquidity}"
        )
    return (root - minimum_liquidity).to_u64()


def quote_subsequent_deposit(
    amount_x: int,
    amount_y: int,
    reserve_x: int,
    reserve_y: int,
    supply: int,
) -> int:
    """LP units minted by a deposit into a pool that already has liquidity.

    Takes the smaller of the two proportional quotes so an off-ratio deposit
    never dilutes existing holders. The unused excess of the better-priced
    side stays in the pool; it is not refunded.

    Raises:
        ZeroBalance: If either reserve or the supply is zero
        LiquidityBelowMinimum: If the deposit is worth less than one LP unit
    """
    for name, value in (
        ("amount_x", amount_x),
        ("amount_y", amount_y),
        ("reserve_x", reserve_x),
        ("reserve_y", reserve_y),
        ("supply", supply),
    ):
        require_u64(value, name)

    if reserve_x == 0 or reserve_y == 0 or supply == 0:
        raise ZeroBalance(
            f"Pool has no liquidity: reserves=({reserve_x}, {reserve_y}), supply={supply}"
        )

    lp_from_x = (S(amount_x) * S(supply)) // S(reserve_x)
    lp_from_y = (S(amount_y) * S(supply)) // S(reserve_y)
    lp_out = lp_from_x.min(lp_from_y)

    if lp_out == 0:
        raise LiquidityBelowMinimum(
            f"Deposit ({amount_x}, {amount_y}) mints zero LP against supply {supply}"
        )
    return lp_out.to_u64()


def quote_deposit(
    snapshot: PoolSnapshot,
    amount_x: int,
    amount_y: int,
    minimum_liquidity: int = MINIMUM_LIQUIDITY,
) -> int:
    """Dispatch to the first or subsequent deposit quote for a snapshot."""
    if snapshot.is_empty:
        return quote_first_deposit(amount_x, amount_y, minimum_liquidity)
    return quote_subsequent_deposit(
        amount_x, amount_y, snapshot.reserve_x, snapshot.reserve_y, snapshot.supply
    )


def quote_withdraw(
    lp_amount: int,
    reserve_x: int,
    reserve_y: int,
    supply: int,
) -> tuple[int, int]:
    """Amounts of each token released by burning `lp_amount` LP units.

    Symmetric and proportional: redeeming the whole supply returns the whole
    reserves, less rounding dust that stays in the pool.

    Returns:
        Tuple of (amount_x, amount_y)

    Raises:
        ZeroBalance: If the supply is zero
        InsufficientBalance: If lp_amount exceeds the supply
        LiquidityBelowMinimum: If either side rounds down to zero
    """
    for name, value in (
        ("lp_amount", lp_amount),
        ("reserve_x", reserve_x),
        ("reserve_y", reserve_y),
        ("supply", supply),
    ):
        require_u64(value, name)

    if supply == 0:
        raise ZeroBalance("Pool has no LP supply")
    if lp_amount > supply:
        raise InsufficientBalance(f"Cannot burn more LP than supply: {lp_amount} > {supply}")

    amount_x = (S(lp_amount) * S(reserve_x)) // S(supply)
    amount_y = (S(lp_amount) * S(reserve_y)) // S(supply)

    if amount_x == 0 or amount_y == 0:
        raise LiquidityBelowMinimum(
            f"Burning {lp_amount} LP releases ({amount_x}, {amount_y})"
        )
    return amount_x.to_u64(), amount_y.to_u64()


def quote_swap(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
) -> int:
    """Output amount for an exact-input swap.

    The fee stays in the pool, so the product of reserves never shrinks:
        (reserve_in + amount_in) * (reserve_out - amount_out) >= reserve_in * reserve_out

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        fee_bps: Pool fee in basis points

    Returns:
        Output token amount

    Raises:
        Underflow: If fee_bps exceeds the fee denominator
        ZeroBalance: If both reserve_in and amount_in are zero
        SlippageExceeded: If the output rounds down to zero
    """
    require_u64(amount_in, "amount_in")
    require_u64(reserve_in, "reserve_in")
    require_u64(reserve_out, "reserve_out")
    if fee_bps > FEE_DENOMINATOR:
        raise Underflow(f"Underflow: {FEE_DENOMINATOR} - {fee_bps}")

    amount_in_after_fee = S(amount_in) * (S(FEE_DENOMINATOR) - fee_bps)
    numerator = amount_in_after_fee * S(reserve_out)
    denominator = S(reserve_in) * S(FEE_DENOMINATOR) + amount_in_after_fee

    amount_out = numerator // denominator
    if amount_out == 0:
        raise SlippageExceeded(
            f"Swap of {amount_in} against reserves ({reserve_in}, {reserve_out}) yields zero"
        )
    return amount_out.to_u64()


def constant_product(reserve_x: int, reserve_y: int) -> int:
    """k = reserve_x * reserve_y (fits 128 bits for uint64 reserves)."""
    return (S(reserve_x) * S(reserve_y)).value


def check_swap_invariant(
    reserve_in: int,
    reserve_out: int,
    amount_in: int,
    amount_out: int,
) -> bool:
    """True if the trade leaves the constant product unchanged or larger."""
    if amount_out >= reserve_out:
        return False
    k_before = constant_product(reserve_in, reserve_out)
    k_after = constant_product(reserve_in + amount_in, reserve_out - amount_out)
    return k_after >= k_before


# --- Post-operation state ---
#
# Reserves and supply are uint64; narrowing here catches a deposit or swap
# that would push any of them past 2^64-1 before anything is committed.


def after_deposit(snapshot: PoolSnapshot, amount_x: int, amount_y: int, lp_out: int) -> PoolSnapshot:
    """Pool state once a deposit is applied."""
    return PoolSnapshot(
        reserve_x=(S(snapshot.reserve_x) + amount_x).to_u64(),
        reserve_y=(S(snapshot.reserve_y) + amount_y).to_u64(),
        supply=(S(snapshot.supply) + lp_out).to_u64(),
    )


def after_withdraw(
    snapshot: PoolSnapshot, lp_amount: int, amount_x: int, amount_y: int
) -> PoolSnapshot:
    """Pool state once a withdrawal is applied."""
    return PoolSnapshot(
        reserve_x=(S(snapshot.reserve_x) - amount_x).value,
        reserve_y=(S(snapshot.reserve_y) - amount_y).value,
        supply=(S(snapshot.supply) - lp_amount).value,
    )


def after_swap(
    snapshot: PoolSnapshot, x_to_y: bool, amount_in: int, amount_out: int
) -> PoolSnapshot:
    """Pool state once a swap is applied; supply is unchanged."""
    if x_to_y:
        reserve_x = (S(snapshot.reserve_x) + amount_in).to_u64()
        reserve_y = (S(snapshot.reserve_y) - amount_out).value
    else:
        reserve_x = (S(snapshot.reserve_x) - amount_out).value
        reserve_y = (S(snapshot.reserve_y) + amount_in).to_u64()
    return PoolSnapshot(reserve_x=reserve_x, reserve_y=reserve_y, supply=snapshot.supply)
