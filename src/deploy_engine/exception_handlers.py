"""Global exception handlers for the FastAPI application.

This module converts engine exceptions into HTTP responses so routes can let
them propagate.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from deploy_engine.exceptions import (
    AuthorizationError,
    DeployEngineError,
    InvalidSpecificationError,
    InvalidTransitionError,
    ResourceNotFoundError,
    SnapshotInUseError,
    TestTriggerNotConfiguredError,
    UnverifiedSnapshotError,
)

# Most specific classes first; the first match wins
_STATUS_BY_ERROR: tuple[tuple[type[DeployEngineError], int], ...] = (
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (SnapshotInUseError, status.HTTP_409_CONFLICT),
    (InvalidSpecificationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnverifiedSnapshotError, status.HTTP_400_BAD_REQUEST),
    (TestTriggerNotConfiguredError, status.HTTP_400_BAD_REQUEST),
)


def status_code_for(exc: DeployEngineError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance
    """

    @app.exception_handler(DeployEngineError)
    async def engine_error_handler(request: Request, exc: DeployEngineError) -> JSONResponse:
        code = status_code_for(exc)
        logger.debug(f"{request.method} {request.url.path} -> {code}: {exc}")
        return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})

    logger.debug("Registered exception handlers")
