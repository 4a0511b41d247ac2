"""RGB asset settlement reconciliation service."""

__version__ = "0.1.0"
