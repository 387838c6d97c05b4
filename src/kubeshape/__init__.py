"""kubeshape - Derive and reconcile workload resources from Application records."""

from kubeshape.cli import cli

__version__ = "0.1.0"
__all__ = ["cli"]
