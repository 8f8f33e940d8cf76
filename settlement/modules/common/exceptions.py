"""Base exception for settlement domain errors."""


class SettlementError(Exception):
    """Base class for every error raised by the settlement modules."""
