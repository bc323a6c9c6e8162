"""API endpoints for the pool engine."""

from fastapi import APIRouter, Depends

from cpamm.engine import PoolEngine, get_default_engine
from cpamm.models.requests import (
    AuthorityRequest,
    DepositRequest,
    DepositResponse,
    InitializeRequest,
    PoolResponse,
    SwapRequest,
    SwapResponse,
    WithdrawRequest,
    WithdrawResponse,
)

router = APIRouter(prefix="/pools")


def get_engine() -> PoolEngine:
    """Dependency provider for the engine instance.

    Override this in tests to inject an engine with its own ledger:
        app.dependency_overrides[get_engine] = lambda: engine

    Returns:
        The engine instance to run operations on.
    """
    return get_default_engine()


# PoolError is not caught here: the handler registered in cpamm.api.main turns
# it into a 4xx response carrying the error kind.


@router.post("", status_code=201)
def initialize(request: InitializeRequest, engine: PoolEngine = Depends(get_engine)) -> PoolResponse:
    """Create a pool at zero reserves and supply."""
    engine.initialize(
        request.pool_id,
        request.token_x,
        request.token_y,
        request.fee_bps,
        decimals_x=request.decimals_x,
        decimals_y=request.decimals_y,
        authority=request.authority,
    )
    return PoolResponse.from_record(engine.record(request.pool_id))


@router.get("/{pool_id}")
def get_pool(pool_id: str, engine: PoolEngine = Depends(get_engine)) -> PoolResponse:
    """Persisted record of a pool."""
    return PoolResponse.from_record(engine.record(pool_id))


@router.post("/{pool_id}/deposit")
def deposit(
    pool_id: str, request: DepositRequest, engine: PoolEngine = Depends(get_engine)
) -> DepositResponse:
    lp_minted = engine.deposit(
        pool_id, request.amount_x, request.amount_y, request.min_lp, request.caller
    )
    return DepositResponse(lp_minted=lp_minted)


@router.post("/{pool_id}/withdraw")
def withdraw(
    pool_id: str, request: WithdrawRequest, engine: PoolEngine = Depends(get_engine)
) -> WithdrawResponse:
    amount_x, amount_y = engine.withdraw(
        pool_id, request.lp_amount, request.min_x, request.min_y, request.caller
    )
    return WithdrawResponse(amount_x=amount_x, amount_y=amount_y)


@router.post("/{pool_id}/swap")
def swap(
    pool_id: str, request: SwapRequest, engine: PoolEngine = Depends(get_engine)
) -> SwapResponse:
    amount_out = engine.swap(
        pool_id, request.x_to_y, request.amount_in, request.min_out, request.caller
    )
    return SwapResponse(amount_out=amount_out)


@router.post("/{pool_id}/lock")
def lock(
    pool_id: str, request: AuthorityRequest, engine: PoolEngine = Depends(get_engine)
) -> PoolResponse:
    engine.lock(pool_id, request.caller)
    return PoolResponse.from_record(engine.record(pool_id))


@router.post("/{pool_id}/unlock")
def unlock(
    pool_id: str, request: AuthorityRequest, engine: PoolEngine = Depends(get_engine)
) -> PoolResponse:
    engine.unlock(pool_id, request.caller)
    return PoolResponse.from_record(engine.record(pool_id))
