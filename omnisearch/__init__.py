"""Unified search across connected workplace integrations."""

__version__ = "1.0.0"
