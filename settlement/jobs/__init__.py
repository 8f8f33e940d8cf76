"""Periodic background jobs."""

from .scheduler import SettlementScheduler

__all__ = ["SettlementScheduler"]
