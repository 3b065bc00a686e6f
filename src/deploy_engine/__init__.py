"""The deployment and rollback orchestration engine package."""

from .__version__ import __version__
from .settings import Settings, get_settings  # noqa: F401

__all__ = ["__version__", "get_settings", "Settings"]
