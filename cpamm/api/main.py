"""FastAPI application for the pool engine.

Note: caller authentication is not implemented here. `caller` in each request
body is trusted as-is; the host placing this service must authenticate it.
"""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cpamm import __version__
from cpamm.api.endpoints import router
from cpamm.errors import ErrorKind, PoolError

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("CPAMM_HOST", "127.0.0.1")
PORT = int(os.environ.get("CPAMM_PORT", "8000"))
DEBUG = os.environ.get("CPAMM_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("CPAMM_LOG_LEVEL", "INFO").upper()

# HTTP status per error kind; anything not listed is 422
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.POOL_NOT_FOUND: 404,
    ErrorKind.POOL_ALREADY_EXISTS: 409,
    ErrorKind.POOL_LOCKED: 409,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NO_AUTHORITY: 403,
    ErrorKind.CUSTODY_FAILURE: 502,
    ErrorKind.INVARIANT_VIOLATION: 500,
}

logger = structlog.get_logger()

app = FastAPI(
    title="cpamm",
    description="Constant-product liquidity pool engine",
    version=__version__,
)


@app.exception_handler(PoolError)
async def pool_error_handler(request: Request, exc: PoolError) -> JSONResponse:
    """Surface the error kind verbatim with a matching status code."""
    status_code = ERROR_STATUS.get(exc.kind, 422)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure structlog for console output at the given level name."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
    )


def run() -> None:
    """Run the pool engine API server.

    Configuration via environment variables:
    - CPAMM_HOST: Host to bind to (default: 127.0.0.1)
    - CPAMM_PORT: Port to bind to (default: 8000)
    - CPAMM_DEBUG: Enable debug/reload mode (default: false)
    - CPAMM_LOG_LEVEL: Log level name (default: INFO)
    """
    configure_logging()
    logger.info("starting_api", host=HOST, port=PORT, debug=DEBUG)
    uvicorn.run(
        "cpamm.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
