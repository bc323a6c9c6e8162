"""Tests for UnitOfWork staging, commit and rollback."""

import pytest
from structlog.testing import capture_logs

from cpamm.errors import CustodyFailure
from cpamm.ledger.memory import InMemoryLedger
from cpamm.models.pool import Pool, PoolConfig, PoolSnapshot
from cpamm.unit_of_work import CustodyStep, StepKind, UnitOfWork
from tests.conftest import FailingLedger, FailureConfig
from tests.helpers import ALICE, POOL_ID, TOKEN_X, TOKEN_Y

POOL_ACCOUNT = f"pool:{POOL_ID}"
LP_TOKEN = f"lp:{POOL_ID}"


def make_pool() -> Pool:
    return Pool(config=PoolConfig(pool_id=POOL_ID, token_x=TOKEN_X, token_y=TOKEN_Y, fee_bps=30))


def fund(ledger: InMemoryLedger, amount: int = 1_000) -> InMemoryLedger:
    ledger.credit(ALICE, TOKEN_X, amount)
    ledger.credit(ALICE, TOKEN_Y, amount)
    return ledger


def stage_deposit(uow: UnitOfWork) -> UnitOfWork:
    return (
        uow.transfer(TOKEN_X, ALICE, POOL_ACCOUNT, 100)
        .transfer(TOKEN_Y, ALICE, POOL_ACCOUNT, 200)
        .mint(LP_TOKEN, ALICE, 50)
        .set_state(PoolSnapshot(100, 200, 50))
    )


class TestCustodyStep:
    def test_transfer_inverse_swaps_accounts(self):
        step = CustodyStep(StepKind.TRANSFER, TOKEN_X, ALICE, POOL_ACCOUNT, 10)
        assert step.inverse() == CustodyStep(StepKind.TRANSFER, TOKEN_X, POOL_ACCOUNT, ALICE, 10)

    def test_mint_inverse_is_burn(self):
        step = CustodyStep(StepKind.MINT, LP_TOKEN, None, ALICE, 10)
        assert step.inverse() == CustodyStep(StepKind.BURN, LP_TOKEN, ALICE, None, 10)

    def test_burn_inverse_is_mint(self):
        step = CustodyStep(StepKind.BURN, LP_TOKEN, ALICE, None, 10)
        assert step.inverse() == CustodyStep(StepKind.MINT, LP_TOKEN, None, ALICE, 10)

    def test_describe(self):
        step = CustodyStep(StepKind.MINT, LP_TOKEN, None, ALICE, 10)
        assert step.describe() == {
            "kind": "mint",
            "token": LP_TOKEN,
            "source": None,
            "destination": ALICE,
            "amount": 10,
        }


class TestUnitOfWorkCommit:
    """Tests for the happy path."""

    def test_commit_applies_steps_then_state(self):
        ledger = fund(InMemoryLedger())
        pool = make_pool()
        uow = stage_deposit(UnitOfWork(ledger, pool))

        uow.commit()

        assert uow.committed
        assert ledger.get_balance(POOL_ACCOUNT, TOKEN_X) == 100
        assert ledger.get_balance(POOL_ACCOUNT, TOKEN_Y) == 200
        assert ledger.get_balance(ALICE, LP_TOKEN) == 50
        assert pool.snapshot() == PoolSnapshot(100, 200, 50)

    def test_steps_are_kept_in_order(self):
        uow = stage_deposit(UnitOfWork(InMemoryLedger(), make_pool()))
        assert [step.kind for step in uow.steps] == [
            StepKind.TRANSFER,
            StepKind.TRANSFER,
            StepKind.MINT,
        ]

    def test_commit_without_state_raises(self):
        uow = UnitOfWork(fund(InMemoryLedger()), make_pool())
        uow.transfer(TOKEN_X, ALICE, POOL_ACCOUNT, 1)
        with pytest.raises(RuntimeError):
            uow.commit()

    def test_double_commit_raises(self):
        uow = stage_deposit(UnitOfWork(fund(InMemoryLedger()), make_pool()))
        uow.commit()
        with pytest.raises(RuntimeError):
            uow.commit()

    def test_staging_after_commit_raises(self):
        uow = stage_deposit(UnitOfWork(fund(InMemoryLedger()), make_pool()))
        uow.commit()
        with pytest.raises(RuntimeError):
            uow.transfer(TOKEN_X, ALICE, POOL_ACCOUNT, 1)

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_step_rejected(self, amount):
        uow = UnitOfWork(InMemoryLedger(), make_pool())
        with pytest.raises(ValueError):
            uow.transfer(TOKEN_X, ALICE, POOL_ACCOUNT, amount)


class TestUnitOfWorkRollback:
    """A refused step leaves ledger and pool exactly as they were."""

    def assert_untouched(self, ledger: InMemoryLedger, pool: Pool) -> None:
        assert ledger.balances() == {(ALICE, TOKEN_X): 1_000, (ALICE, TOKEN_Y): 1_000}
        assert ledger.get_supply(LP_TOKEN) == 0
        assert pool.snapshot() == PoolSnapshot()

    def test_refused_mint_rolls_back_transfers(self):
        ledger = fund(FailingLedger(FailureConfig(method="mint")))
        pool = make_pool()
        uow = stage_deposit(UnitOfWork(ledger, pool))

        with pytest.raises(CustodyFailure):
            uow.commit()

        assert not uow.committed
        self.assert_untouched(ledger, pool)

    def test_refused_second_transfer_rolls_back_first(self):
        ledger = fund(FailingLedger(FailureConfig(method="transfer", on_call=2)))
        pool = make_pool()

        with pytest.raises(CustodyFailure):
            stage_deposit(UnitOfWork(ledger, pool)).commit()

        self.assert_untouched(ledger, pool)

    def test_raising_ledger_is_wrapped(self):
        boom = RuntimeError("ledger offline")
        ledger = fund(FailingLedger(FailureConfig(method="mint", raise_error=boom)))
        pool = make_pool()

        with pytest.raises(CustodyFailure) as exc_info:
            stage_deposit(UnitOfWork(ledger, pool)).commit()

        assert exc_info.value.__cause__ is boom
        assert "ledger offline" in str(exc_info.value)
        self.assert_untouched(ledger, pool)

    def test_failed_first_step_needs_no_rollback(self):
        ledger = fund(FailingLedger(FailureConfig(method="transfer")))
        pool = make_pool()

        with pytest.raises(CustodyFailure):
            stage_deposit(UnitOfWork(ledger, pool)).commit()

        # Only the refused transfer was attempted
        assert ledger.calls == {"transfer": 1}
        self.assert_untouched(ledger, pool)

    def test_failed_compensation_raises(self):
        # Second transfer is refused, then the compensating transfer (third call) too
        ledger = fund(
            FailingLedger(
                FailureConfig(method="transfer", on_call=2),
                FailureConfig(method="transfer", on_call=3),
            )
        )
        pool = make_pool()

        with capture_logs() as logs:
            with pytest.raises(CustodyFailure, match="Rollback"):
                stage_deposit(UnitOfWork(ledger, pool)).commit()

        assert pool.snapshot() == PoolSnapshot()
        failures = [log for log in logs if log["event"] == "custody_rollback_failed"]
        assert len(failures) == 1
        assert failures[0]["error"] == "refused"

    def test_raising_compensation_keeps_compensating(self):
        """A compensation that raises is logged and the earlier steps are still undone."""
        offline = RuntimeError("ledger offline")
        ledger = fund(
            FailingLedger(
                FailureConfig(method="mint"),
                # Undo of the Y transfer is the third transfer call
                FailureConfig(method="transfer", on_call=3, raise_error=offline),
            )
        )
        pool = make_pool()

        with capture_logs() as logs:
            with pytest.raises(CustodyFailure, match="Rollback of transfer 200") as exc_info:
                stage_deposit(UnitOfWork(ledger, pool)).commit()

        assert exc_info.value.__cause__ is offline
        # X transfer was still compensated; Y is stuck in custody
        assert ledger.get_balance(ALICE, TOKEN_X) == 1_000
        assert ledger.get_balance(ALICE, TOKEN_Y) == 800
        assert ledger.get_balance(POOL_ACCOUNT, TOKEN_Y) == 200
        assert ledger.calls == {"mint": 1, "transfer": 4}
        assert pool.snapshot() == PoolSnapshot()

        failures = [log for log in logs if log["event"] == "custody_rollback_failed"]
        assert len(failures) == 1
        assert failures[0]["log_level"] == "error"
        assert failures[0]["error"] == "ledger offline"
        assert failures[0]["step"]["token"] == TOKEN_Y

    def test_compensation_error_takes_precedence_as_cause(self):
        boom = RuntimeError("mint failed")
        offline = RuntimeError("ledger offline")
        ledger = fund(
            FailingLedger(
                FailureConfig(method="mint", raise_error=boom),
                FailureConfig(method="transfer", on_call=4, raise_error=offline),
            )
        )

        with pytest.raises(CustodyFailure, match=f"Rollback of transfer 100 {TOKEN_X}") as exc_info:
            stage_deposit(UnitOfWork(ledger, make_pool())).commit()

        assert exc_info.value.__cause__ is offline
        assert ledger.get_balance(ALICE, TOKEN_Y) == 1_000
