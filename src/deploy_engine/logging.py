"""Logging configuration for the deployment engine.

The server logs to stderr with timestamps; the CLI uses a compact
``level | message`` format. Audit entries written by ``LoguruAuditSink`` are
ordinary loguru records bound with ``audit=True`` and can additionally be
routed to their own JSON-lines file.
"""

import logging
import sys

from loguru import logger

SERVER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)
CLI_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"

# Loggers that follow the engine level so one setting controls everything
_ALIGNED_LOGGERS = ("httpcore", "httpx", "asyncio", "uvicorn", "uvicorn.access", "deploy_engine")
_SQLALCHEMY_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.engine.base", "sqlalchemy.dialects", "sqlalchemy.pool")


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def is_audit_record(record) -> bool:
    return bool(record["extra"].get("audit"))


def add_audit_sink(path: str) -> int:
    """Write every audit entry to ``path`` as one JSON document per line.

    Returns:
        The loguru sink id
    """
    sink_id = logger.add(path, level="INFO", filter=is_audit_record, serialize=True)
    logger.info(f"Audit entries are written to {path}")
    return sink_id


def setup_logging(log_level: str, audit_log_path: str | None = None):
    """Configure loguru for the server and route standard logging into it.

    Args:
        log_level: Log level to use (from settings, which handles env vars and CLI args).
        audit_log_path: Optional JSON-lines file receiving audit entries.
    """
    log_level = log_level.upper()

    logger.remove()
    logger.add(sys.stderr, format=SERVER_FORMAT, level=log_level, colorize=True)
    logger.info(f"Log level set to: {log_level}")

    if audit_log_path:
        add_audit_sink(audit_log_path)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in logging.Logger.manager.loggerDict:
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False

    for name in _ALIGNED_LOGGERS:
        logging.getLogger(name).setLevel(log_level)


def setup_cli_logging(log_level: str = "INFO"):
    """Compact stderr logging for the administrative CLI."""
    logger.remove()
    logger.add(sys.stderr, format=CLI_FORMAT, level=log_level.upper(), colorize=True)
    logger.enable("deploy_engine")


def setup_sqlalchemy_logging():
    """Route SQLAlchemy's loggers through loguru."""
    for name in _SQLALCHEMY_LOGGERS:
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False
