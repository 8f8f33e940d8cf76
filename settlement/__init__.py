"""Resellers Hub order settlement engine."""

__version__ = "0.4.0"
