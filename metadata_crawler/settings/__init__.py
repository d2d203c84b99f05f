"""Application settings loading."""

from .app import LookupSettings, get_settings


__all__ = ["LookupSettings", "get_settings"]
