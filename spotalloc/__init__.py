"""Shared-capital allocation core for multi-bot spot trading."""

__version__ = "0.1.0"
