"""Utility settlement engine for multi-tenant rental properties."""

__version__ = "0.1.0"
