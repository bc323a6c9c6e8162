"""All-or-nothing commit of custody movements plus pool state.

An operation stages every effect first: the custody steps (transfers, LP
mint/burn) and the pool state it will leave behind. `commit()` then runs the
custody steps in order. If the ledger refuses any step, the steps already
applied are compensated in reverse order and the pool state is never
touched, so a failed operation has no visible effect.

Usage pattern:
    uow = UnitOfWork(ledger, pool)
    uow.transfer(token_x, caller, pool_account, amount_x)
    uow.mint(lp_token, caller, lp_out)
    uow.set_state(after)
    uow.commit()  # raises CustodyFailure after rolling back
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from cpamm.errors import CustodyFailure
from cpamm.ledger.base import CustodyLedger
from cpamm.models.pool import Pool, PoolSnapshot

logger = structlog.get_logger()


class StepKind(str, Enum):
    TRANSFER = "transfer"
    MINT = "mint"
    BURN = "burn"


@dataclass(frozen=True)
class CustodyStep:
    """One ledger movement staged by an operation."""

    kind: StepKind
    token: str
    # Debited account (None for mint)
    source: str | None
    # Credited account (None for burn)
    destination: str | None
    amount: int

    def apply(self, ledger: CustodyLedger) -> bool:
        if self.kind is StepKind.TRANSFER:
            assert self.source is not None and self.destination is not None
            return ledger.transfer(self.token, self.source, self.destination, self.amount)
        if self.kind is StepKind.MINT:
            assert self.destination is not None
            return ledger.mint(self.token, self.destination, self.amount)
        assert self.source is not None
        return ledger.burn(self.token, self.source, self.amount)

    def inverse(self) -> CustodyStep:
        """The step that undoes this one."""
        if self.kind is StepKind.TRANSFER:
            return CustodyStep(
                StepKind.TRANSFER, self.token, self.destination, self.source, self.amount
            )
        if self.kind is StepKind.MINT:
            return CustodyStep(StepKind.BURN, self.token, self.destination, None, self.amount)
        return CustodyStep(StepKind.MINT, self.token, None, self.source, self.amount)

    def describe(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "token": self.token,
            "source": self.source,
            "destination": self.destination,
            "amount": self.amount,
        }


class UnitOfWork:
    """Staged custody steps and pool state, committed together."""

    def __init__(self, ledger: CustodyLedger, pool: Pool) -> None:
        self._ledger = ledger
        self._pool = pool
        self._steps: list[CustodyStep] = []
        self._after: PoolSnapshot | None = None
        self._committed = False

    @property
    def steps(self) -> tuple[CustodyStep, ...]:
        return tuple(self._steps)

    @property
    def committed(self) -> bool:
        return self._committed

    def transfer(self, token: str, source: str, destination: str, amount: int) -> UnitOfWork:
        self._stage(CustodyStep(StepKind.TRANSFER, token, source, destination, amount))
        return self

    def mint(self, claim_token: str, to: str, amount: int) -> UnitOfWork:
        self._stage(CustodyStep(StepKind.MINT, claim_token, None, to, amount))
        return self

    def burn(self, claim_token: str, source: str, amount: int) -> UnitOfWork:
        self._stage(CustodyStep(StepKind.BURN, claim_token, source, None, amount))
        return self

    def set_state(self, after: PoolSnapshot) -> UnitOfWork:
        self._require_open()
        self._after = after
        return self

    def commit(self) -> None:
        """Apply every custody step, then the pool state.

        Raises:
            CustodyFailure: If the ledger refused or raised on any step.
                Applied steps are rolled back before raising.
            RuntimeError: If committed twice or no state was staged
        """
        self._require_open()
        if self._after is None:
            raise RuntimeError("UnitOfWork has no pool state staged")

        applied: list[CustodyStep] = []
        for step in self._steps:
            try:
                ok = step.apply(self._ledger)
            except Exception as err:
                self._rollback(applied, cause=err)
                raise CustodyFailure(
                    f"Ledger raised on {step.kind.value} of {step.amount} {step.token}: {err}"
                ) from err
            if not ok:
                self._rollback(applied)
                raise CustodyFailure(
                    f"Ledger refused {step.kind.value} of {step.amount} {step.token}"
                )
            applied.append(step)

        self._pool.apply(self._after)
        self._committed = True

    def _stage(self, step: CustodyStep) -> None:
        self._require_open()
        if step.amount <= 0:
            raise ValueError(f"Custody step amount must be positive: {step.amount}")
        self._steps.append(step)

    def _require_open(self) -> None:
        if self._committed:
            raise RuntimeError("UnitOfWork already committed")

    def _rollback(self, applied: list[CustodyStep], cause: Exception | None = None) -> None:
        """Compensate applied steps in reverse order.

        Every step is attempted even if an earlier compensation fails.

        Raises:
            CustodyFailure: If any compensation was refused or raised, chained
                from the first error the ledger raised (or from cause)
        """
        logger.warning(
            "custody_rollback",
            pool_id=self._pool.pool_id,
            applied_steps=len(applied),
            staged_steps=len(self._steps),
        )
        stuck: list[CustodyStep] = []
        first_error: Exception | None = None
        for step in reversed(applied):
            undo = step.inverse()
            error: Exception | None = None
            try:
                ok = undo.apply(self._ledger)
            except Exception as err:
                ok = False
                error = err
                first_error = first_error or err
            if not ok:
                # Ledger is now out of sync with the pool; needs manual repair.
                logger.error(
                    "custody_rollback_failed",
                    pool_id=self._pool.pool_id,
                    step=undo.describe(),
                    error=str(error) if error is not None else "refused",
                )
                stuck.append(step)

        if stuck:
            failed = ", ".join(f"{step.kind.value} {step.amount} {step.token}" for step in stuck)
            raise CustodyFailure(f"Rollback of {failed} failed") from (first_error or cause)
