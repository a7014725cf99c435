"""Chirp: REST backend for a small social network."""

__version__ = "0.1.0"
