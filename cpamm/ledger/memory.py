"""In-memory custody ledger.

Reference CustodyLedger used by the HTTP service and the test suite. Balances
are a sparse (account, token) -> amount table; supply is tracked only for
tokens created through `mint`.
"""

from __future__ import annotations

import threading

import structlog

from cpamm.constants import UINT64_MAX

logger = structlog.get_logger()


class InMemoryLedger:
    """Thread-safe balance table implementing CustodyLedger."""

    def __init__(self, balances: dict[tuple[str, str], int] | None = None) -> None:
        """Initialize the ledger with optional starting balances.

        Args:
            balances: Mapping of (account, token) -> amount. If None, starts empty.
        """
        self._lock = threading.Lock()
        self._balances: dict[tuple[str, str], int] = {}
        self._supply: dict[str, int] = {}

        if balances:
            for (account, token), amount in balances.items():
                self.credit(account, token, amount)

    def get_balance(self, account: str, token: str) -> int:
        with self._lock:
            return self._balances.get((account, token), 0)

    def get_supply(self, claim_token: str) -> int:
        with self._lock:
            return self._supply.get(claim_token, 0)

    def credit(self, account: str, token: str, amount: int) -> None:
        """Fund an account out of thin air (faucet for tests and demos).

        Raises:
            ValueError: If amount is negative or the balance would exceed uint64
        """
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative: {amount}")
        with self._lock:
            new_balance = self._balances.get((account, token), 0) + amount
            if new_balance > UINT64_MAX:
                raise ValueError(f"Balance would exceed uint64: {new_balance}")
            self._set(account, token, new_balance)

    def transfer(self, token: str, source: str, destination: str, amount: int) -> bool:
        if amount < 0:
            return False
        with self._lock:
            source_balance = self._balances.get((source, token), 0)
            dest_balance = self._balances.get((destination, token), 0)
            if source_balance < amount:
                logger.debug(
                    "ledger_transfer_refused",
                    token=token,
                    source=source,
                    balance=source_balance,
                    amount=amount,
                )
                return False
            if source != destination and dest_balance + amount > UINT64_MAX:
                return False
            self._set(source, token, source_balance - amount)
            self._set(destination, token, self._balances.get((destination, token), 0) + amount)
        return True

    def mint(self, claim_token: str, to: str, amount: int) -> bool:
        if amount < 0:
            return False
        with self._lock:
            supply = self._supply.get(claim_token, 0)
            if supply + amount > UINT64_MAX:
                return False
            self._supply[claim_token] = supply + amount
            self._set(to, claim_token, self._balances.get((to, claim_token), 0) + amount)
        return True

    def burn(self, claim_token: str, source: str, amount: int) -> bool:
        if amount < 0:
            return False
        with self._lock:
            balance = self._balances.get((source, claim_token), 0)
            if balance < amount:
                logger.debug(
                    "ledger_burn_refused",
                    token=claim_token,
                    source=source,
                    balance=balance,
                    amount=amount,
                )
                return False
            self._supply[claim_token] = self._supply.get(claim_token, 0) - amount
            self._set(source, claim_token, balance - amount)
        return True

    def balances(self) -> dict[tuple[str, str], int]:
        """Copy of every non-zero balance."""
        with self._lock:
            return dict(self._balances)

    def _set(self, account: str, token: str, amount: int) -> None:
        # Caller holds the lock. Zero balances are dropped to keep the table sparse.
        if amount == 0:
            self._balances.pop((account, token), None)
        else:
            self._balances[(account, token)] = amount

    def __repr__(self) -> str:
        return f"InMemoryLedger({len(self._balances)} balances)"
