"""Favorite-city weather dashboard: cached snapshots, refresh policy and search."""

__version__ = "0.1.0"
