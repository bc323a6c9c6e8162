"""Engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cpamm.constants import (
    FEE_DENOMINATOR,
    LP_DECIMALS,
    MAX_FEE_BPS,
    MAX_TOKEN_DECIMALS,
    MINIMUM_LIQUIDITY,
)


@dataclass(frozen=True)
class EngineConfig:
    """Centralized configuration for pool validation.

    Holds the limits checked at initialize and the bootstrap lock applied on
    the first deposit, so tests can run the engine with different limits.

    Attributes:
        max_fee_bps: Highest fee accepted at initialize (default: 500 = 5%)
        max_token_decimals: Highest decimals accepted for tokenX/tokenY (default: 9)
        minimum_liquidity: LP units withheld from the first mint (default: 1000)
        lp_decimals: Decimals reported for the LP claim token (default: 6)
    """

    max_fee_bps: int = MAX_FEE_BPS
    max_token_decimals: int = MAX_TOKEN_DECIMALS
    minimum_liquidity: int = MINIMUM_LIQUIDITY
    lp_decimals: int = LP_DECIMALS

    def __post_init__(self) -> None:
        if not 0 <= self.max_fee_bps < FEE_DENOMINATOR:
            raise ValueError(
                f"max_fee_bps must be in [0, {FEE_DENOMINATOR}): {self.max_fee_bps}"
            )
        if self.max_token_decimals < 0:
            raise ValueError(f"max_token_decimals must be non-negative: {self.max_token_decimals}")
        if self.minimum_liquidity < 0:
            raise ValueError(f"minimum_liquidity must be non-negative: {self.minimum_liquidity}")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from environment variables.

        - CPAMM_MAX_FEE_BPS: Fee ceiling in bps (default: 500)
        - CPAMM_MAX_TOKEN_DECIMALS: Token decimals ceiling (default: 9)
        """
        return cls(
            max_fee_bps=int(os.environ.get("CPAMM_MAX_FEE_BPS", str(MAX_FEE_BPS))),
            max_token_decimals=int(
                os.environ.get("CPAMM_MAX_TOKEN_DECIMALS", str(MAX_TOKEN_DECIMALS))
            ),
        )


# Default configuration instance
DEFAULT_ENGINE_CONFIG = EngineConfig()
