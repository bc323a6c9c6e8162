"""Custody ledger interface consumed by the pool engine."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CustodyLedger(Protocol):
    """Host ledger holding token and LP balances.

    The engine never moves balances itself; it asks the ledger to. Underlying
    tokens and LP claim tokens live in the same (account, token) table.

    Mutating methods report refusal by returning False rather than raising,
    so the engine can roll back whatever part of an operation already ran.
    """

    def get_balance(self, account: str, token: str) -> int:
        """Balance of `token` held by `account` (0 if none)."""
        ...

    def transfer(self, token: str, source: str, destination: str, amount: int) -> bool:
        """Move `amount` of `token` between accounts.

        Returns:
            True on success, False if the ledger refused the transfer
        """
        ...

    def mint(self, claim_token: str, to: str, amount: int) -> bool:
        """Create `amount` LP units of `claim_token` for `to`."""
        ...

    def burn(self, claim_token: str, source: str, amount: int) -> bool:
        """Destroy `amount` LP units of `claim_token` held by `source`."""
        ...

    def get_supply(self, claim_token: str) -> int:
        """Total outstanding units of `claim_token`."""
        ...
