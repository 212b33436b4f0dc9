"""Interactive, rollback-aware release tool."""

__version__ = "0.3.0"
