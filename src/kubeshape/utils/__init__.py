"""Utility functions."""

from kubeshape.utils.config import Settings, load_config
from kubeshape.utils.logging import setup_logging

__all__ = ["Settings", "load_config", "setup_logging"]
