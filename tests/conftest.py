"""Pytest configuration and fixtures."""

from dataclasses import dataclass

import pytest

from cpamm.engine import PoolEngine
from cpamm.ledger.memory import InMemoryLedger
from tests.helpers import ALICE, BOB, make_engine, seed_pool


@pytest.fixture
def engine() -> PoolEngine:
    """Engine with ALICE and BOB funded and no pools."""
    return make_engine(fund=[ALICE, BOB])


@pytest.fixture
def seeded_engine(engine: PoolEngine) -> PoolEngine:
    """Engine holding the reference pool after ALICE's first deposit."""
    seed_pool(engine)
    return engine


# =============================================================================
# Mock ledgers for failure injection
# =============================================================================


@dataclass
class FailureConfig:
    """Which ledger call should fail, and how."""

    # Method name to fail: "transfer", "mint" or "burn"
    method: str = "mint"
    # Fail on the n-th call of that method (1-based)
    on_call: int = 1
    # Raise this instead of returning False
    raise_error: Exception | None = None


class FailingLedger(InMemoryLedger):
    """InMemoryLedger that refuses (or raises on) the configured calls.

    Usage:
        # Refuse the first mint
        ledger = FailingLedger(FailureConfig(method="mint"))

        # Seed first, then refuse the next burn
        ledger = FailingLedger()
        ...
        ledger.arm(FailureConfig(method="burn"))

        # Refuse the second transfer, raise on the third
        ledger = FailingLedger(
            FailureConfig(method="transfer", on_call=2),
            FailureConfig(method="transfer", on_call=3, raise_error=RuntimeError("boom")),
        )
    """

    def __init__(self, *failures: FailureConfig) -> None:
        super().__init__()
        self.failures: tuple[FailureConfig, ...] = failures
        self.calls: dict[str, int] = {}

    def arm(self, *failures: FailureConfig) -> None:
        """Start failing from now on; earlier calls are not counted."""
        self.failures = failures
        self.calls = {}

    def _should_fail(self, method: str) -> bool:
        count = self.calls.get(method, 0) + 1
        self.calls[method] = count
        for failure in self.failures:
            if failure.method == method and failure.on_call == count:
                if failure.raise_error is not None:
                    raise failure.raise_error
                return True
        return False

    def transfer(self, token: str, source: str, destination: str, amount: int) -> bool:
        if self._should_fail("transfer"):
            return False
        return super().transfer(token, source, destination, amount)

    def mint(self, claim_token: str, to: str, amount: int) -> bool:
        if self._should_fail("mint"):
            return False
        return super().mint(claim_token, to, amount)

    def burn(self, claim_token: str, source: str, amount: int) -> bool:
        if self._should_fail("burn"):
            return False
        return super().burn(claim_token, source, amount)
