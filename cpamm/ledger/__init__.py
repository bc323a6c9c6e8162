"""Custody ledger interface and reference implementation."""

from cpamm.ledger.base import CustodyLedger
from cpamm.ledger.memory import InMemoryLedger

__all__ = ["CustodyLedger", "InMemoryLedger"]
