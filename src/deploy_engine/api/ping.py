"""Liveness endpoint."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from deploy_engine import __version__

router = APIRouter(tags=["System"])


class PingResponse(BaseModel):
    """Liveness answer with a glance at the engine's state."""

    ping: str = "pong"
    version: str = __version__
    default_environment: str
    record_store: str
    active_sessions: int


@router.get("/ping", response_model=PingResponse)
async def ping(request: Request) -> PingResponse:
    """Answer ``pong`` together with the running engine's basic state.

    Needs no actor headers and touches no record store.
    """
    engine = request.app.state.engine
    return PingResponse(
        default_environment=engine.settings.default_environment,
        record_store="sql" if engine.stores.database is not None else "in-memory",
        active_sessions=len(engine.monitor.active_sessions()),
    )
