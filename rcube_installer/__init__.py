"""Roundcube plugin installer."""

__version__ = "0.1.0"
