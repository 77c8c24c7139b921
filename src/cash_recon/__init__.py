"""Store cash collection reconciliation."""

__version__ = "0.1.0"
