"""Multi-platform job aggregation and application layer."""

__version__ = "0.3.0"
