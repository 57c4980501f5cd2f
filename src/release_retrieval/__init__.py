"""Retrieval of external data files for the release pipeline."""

__version__ = "0.1.0"
