"""CLI entry point.

Usage:
    python -m deploy_engine.cli pipeline generate "Add login screen" --branch feature/login
    deploy-engine-cli rollback analyze "Connection to db timed out"
    deploy-engine-cli suites select python src/app/main.py
"""

from deploy_engine.cli.app import app
from deploy_engine.logging import setup_cli_logging


def main() -> None:
    setup_cli_logging()
    app()


if __name__ == "__main__":
    main()
