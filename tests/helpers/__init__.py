"""Test helpers module for shared test utilities.

- constants: Pool, token and account identifiers plus reference amounts
- factories: Ledger, engine and seeded-pool factory functions
"""

from tests.helpers.constants import (
    ALICE,
    AUTHORITY,
    BOB,
    FUNDED_AMOUNT,
    POOL_ID,
    SCENARIO_AMOUNT_X,
    SCENARIO_AMOUNT_Y,
    SCENARIO_FEE_BPS,
    SCENARIO_LP,
    TOKEN_X,
    TOKEN_Y,
)
from tests.helpers.factories import make_engine, make_ledger, seed_pool

__all__ = [
    # Constants
    "POOL_ID",
    "TOKEN_X",
    "TOKEN_Y",
    "AUTHORITY",
    "ALICE",
    "BOB",
    "FUNDED_AMOUNT",
    "SCENARIO_FEE_BPS",
    "SCENARIO_AMOUNT_X",
    "SCENARIO_AMOUNT_Y",
    "SCENARIO_LP",
    # Factories
    "make_ledger",
    "make_engine",
    "seed_pool",
]
