"""CLI module for deploy-engine.

Provides command-line tools that work without a running server.
"""

from deploy_engine.cli.app import app

__all__ = ["app"]
