"""Main FastAPI application module."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from deploy_engine import __version__
from deploy_engine.api.api_router import router as api_router
from deploy_engine.api.ping import router as ping_router
from deploy_engine.exception_handlers import register_exception_handlers
from deploy_engine.logging import setup_logging, setup_sqlalchemy_logging
from deploy_engine.services.engine import DeploymentEngine, build_engine
from deploy_engine.settings import Settings, get_settings


def _log_server_endpoints_summary(settings: Settings) -> None:
    """Log the server URL and the main endpoints.

    Args:
        settings: Application settings containing host and port
    """
    server_url = f"http://{settings.host}:{settings.port}"
    logger.info(f"Server running at: {server_url}")

    endpoints = [
        ("Ping", "/ping"),
        ("REST API", "/api"),
        ("OpenAPI Schema", "/openapi.json"),
        ("API Docs", "/docs"),
    ]
    logger.info("Available endpoints:")
    for name, path in endpoints:
        logger.info(f"   {name}: {server_url}{path}")


async def perform_startup_checks(app_settings: Settings) -> DeploymentEngine:
    """Build the engine the same way the server does and report its wiring.

    Args:
        app_settings: Application settings

    Returns:
        The built engine; callers own its shutdown
    """
    setup_logging(app_settings.log_level, app_settings.audit_log_path)
    setup_sqlalchemy_logging()

    logger.info("Deployment engine performing startup checks")
    engine = build_engine(app_settings)
    store_kind = "sql" if engine.stores.database is not None else "in-memory"
    logger.info(f"Record store: {store_kind}")
    logger.info(f"Default environment: {app_settings.default_environment}")
    logger.info(f"Health probe target: {app_settings.probe_url(app_settings.health_check_path)}")
    logger.debug(f"Registered components: {', '.join(engine.registry.registered())}")
    return engine


@asynccontextmanager
async def app_lifespan(_app: FastAPI):
    """Build the engine on startup and shut it down on exit."""
    settings = get_settings()
    _app.state.settings = settings  # type: ignore[attr-defined]

    engine = await perform_startup_checks(settings)
    _app.state.engine = engine  # type: ignore[attr-defined]

    _log_server_endpoints_summary(settings)

    yield

    logger.info("Deployment engine shutting down")
    await engine.shutdown()


def create_app(engine: DeploymentEngine | None = None) -> FastAPI:
    """Create the ASGI application.

    With ``engine`` given, the lifespan is skipped and that engine is served
    as is; tests use this to inject a pre-wired engine.
    """
    application = FastAPI(
        lifespan=None if engine else app_lifespan,
        title="Deployment engine",
        description="Pipeline execution, approval gates, test triggers, live monitoring and rollbacks",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    if engine is not None:
        application.state.engine = engine

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    application.include_router(ping_router, prefix="")
    application.include_router(api_router, prefix="/api")
    return application


app = create_app()
