"""Pydantic models for the HTTP operation surface."""

from __future__ import annotations

from pydantic import BaseModel, Field

from cpamm.models.types import Decimals, FeeBps, Identifier, Uint64


class InitializeRequest(BaseModel):
    """Create a new pool at zero reserves and supply."""

    pool_id: Identifier = Field(alias="poolId")
    token_x: Identifier = Field(alias="tokenX")
    token_y: Identifier = Field(alias="tokenY")
    fee_bps: FeeBps = Field(alias="feeBps")
    decimals_x: Decimals = Field(default=6, alias="decimalsX")
    decimals_y: Decimals = Field(default=6, alias="decimalsY")
    authority: Identifier | None = None

    model_config = {"populate_by_name": True}


class DepositRequest(BaseModel):
    """Add liquidity and receive LP units."""

    amount_x: Uint64 = Field(alias="amountX")
    amount_y: Uint64 = Field(alias="amountY")
    min_lp: Uint64 = Field(alias="minLp")
    caller: Identifier

    model_config = {"populate_by_name": True}


class WithdrawRequest(BaseModel):
    """Burn LP units and receive a proportional share of both reserves."""

    lp_amount: Uint64 = Field(alias="lpAmount")
    min_x: Uint64 = Field(alias="minX")
    min_y: Uint64 = Field(alias="minY")
    caller: Identifier

    model_config = {"populate_by_name": True}


class SwapRequest(BaseModel):
    """Trade an exact input amount for at least `min_out`."""

    x_to_y: bool = Field(alias="xToY")
    amount_in: Uint64 = Field(alias="amountIn")
    min_out: Uint64 = Field(alias="minOut")
    caller: Identifier

    model_config = {"populate_by_name": True}


class AuthorityRequest(BaseModel):
    """Lock or unlock a pool."""

    caller: Identifier


class PoolResponse(BaseModel):
    """Persisted layout of a pool."""

    pool_id: str = Field(alias="poolId")
    token_x: str = Field(alias="tokenX")
    token_y: str = Field(alias="tokenY")
    fee_bps: int = Field(alias="feeBps")
    locked: bool
    reserve_x: int = Field(alias="reserveX")
    reserve_y: int = Field(alias="reserveY")
    lp_supply: int = Field(alias="lpSupply")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_record(cls, record: dict[str, object]) -> PoolResponse:
        """Build from `Pool.to_record()` output."""
        return cls.model_validate(record)


class DepositResponse(BaseModel):
    lp_minted: int = Field(alias="lpMinted")

    model_config = {"populate_by_name": True}


class WithdrawResponse(BaseModel):
    amount_x: int = Field(alias="amountX")
    amount_y: int = Field(alias="amountY")

    model_config = {"populate_by_name": True}


class SwapResponse(BaseModel):
    amount_out: int = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Body returned for every rejected operation."""

    error: str
    detail: str
