"""Lookup layer for parsed asset URI processing state."""

__version__ = "0.1.0"
