"""Collect vulnerability scan reports from GitHub, store them in SQLite and query them over HTTP."""

__version__ = "0.1.0"