"""Streaming CSV cleaner producing normalized output and MySQL table definitions."""

__version__ = "0.4.3"
