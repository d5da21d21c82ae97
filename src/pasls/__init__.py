"""Pasls: workspace package discovery and search-path setup for a Pascal language server."""

__version__ = "0.3.0"
