"""Server launcher for the deployment engine, driven by typer and Pydantic Settings."""

import asyncio
from typing import Any

import typer
import uvicorn
from loguru import logger

from deploy_engine.logging import setup_logging
from deploy_engine.settings import Settings, get_settings

app = typer.Typer(help="Deployment engine server")


HOST_OPTION = typer.Option(
    None,
    help="Host to bind the server to (overrides DEPLOY_ENGINE_HOST)",
    metavar="<server>",
)  # fmt: skip
PORT_OPTION = typer.Option(
    None,
    help="Port to bind the server to (overrides DEPLOY_ENGINE_PORT)",
    metavar="<port>",
)  # fmt: skip
RELOAD_OPTION = typer.Option(
    None,
    help="Enable/disable auto-reload (overrides DEPLOY_ENGINE_RELOAD)",
)  # fmt: skip
LOG_LEVEL_OPTION = typer.Option(
    None,
    help="Log level (overrides DEPLOY_ENGINE_LOG_LEVEL)",
    metavar="<level>",
    case_sensitive=False,
)  # fmt: skip
DATABASE_URL_OPTION = typer.Option(
    None,
    help="Database URL for the record store (overrides DEPLOY_ENGINE_DATABASE_URL)",
    metavar="<dsn>",
)  # fmt: skip
ENVIRONMENT_OPTION = typer.Option(
    None,
    "--default-environment",
    help="Environment used when a request names none (overrides DEPLOY_ENGINE_DEFAULT_ENVIRONMENT)",
    metavar="<env>",
)  # fmt: skip
AUDIT_LOG_OPTION = typer.Option(
    None,
    "--audit-log",
    help="JSON-lines file for audit entries (overrides DEPLOY_ENGINE_AUDIT_LOG_PATH)",
    metavar="<path>",
)  # fmt: skip
STRICT_HEALTH_OPTION = typer.Option(
    None,
    "--fail-on-unhealthy-probe/--report-unhealthy-probe",
    help="Fail deployments whose post-deploy probe is unhealthy (overrides DEPLOY_ENGINE_FAIL_ON_UNHEALTHY_PROBE)",
)  # fmt: skip


def apply_overrides(**overrides: Any) -> Settings:
    """Copy every non-None command line value onto the cached settings."""
    settings = get_settings()
    for name, value in overrides.items():
        if value is None:
            continue
        setattr(settings, name, value.upper() if name == "log_level" else value)
        logger.debug(f"Setting {name} overridden from the command line")
    return settings


@app.command()
def run(
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
    reload: bool = RELOAD_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    default_environment: str = ENVIRONMENT_OPTION,
    audit_log: str = AUDIT_LOG_OPTION,
    fail_on_unhealthy_probe: bool = STRICT_HEALTH_OPTION,
) -> None:
    """Serve the deployment engine's HTTP API."""
    settings = apply_overrides(
        host=host,
        port=port,
        log_level=log_level,
        reload=reload,
        database_url=database_url,
        default_environment=default_environment,
        audit_log_path=audit_log,
        fail_on_unhealthy_probe=fail_on_unhealthy_probe,
    )
    setup_logging(settings.log_level, settings.audit_log_path)

    logger.info(f"Starting deployment engine on {settings.host}:{settings.port} (reload: {settings.reload})")

    # Reload mode needs an import string
    target: Any = "deploy_engine.app:app"
    if not settings.reload:
        from deploy_engine.app import app as fastapi_app

        target = fastapi_app

    uvicorn.run(target, host=settings.host, port=settings.port, reload=settings.reload, log_level=settings.log_level.lower())


@app.command()
def check(
    log_level: str = LOG_LEVEL_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    default_environment: str = ENVIRONMENT_OPTION,
) -> None:
    """Build the engine from the current settings, report its wiring, then exit."""
    settings = apply_overrides(log_level=log_level, database_url=database_url, default_environment=default_environment)
    setup_logging(settings.log_level)

    from deploy_engine.app import perform_startup_checks

    async def _check() -> None:
        engine = await perform_startup_checks(settings)
        await engine.shutdown()

    try:
        asyncio.run(_check())
    except Exception as e:
        logger.error(f"Startup checks failed: {e}")
        raise typer.Exit(1) from None
    logger.info("Startup checks completed successfully")


if __name__ == "__main__":
    app()
