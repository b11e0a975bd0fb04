"""Versioned dataset creation for a research-data repository."""

__version__ = "0.1.0"
