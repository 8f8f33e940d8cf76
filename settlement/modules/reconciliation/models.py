"""Reconciliation reports."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SweepReport:
    checked: int = 0
    polled: int = 0
    updated: int = 0
    requeued: int = 0
    errors: int = 0


@dataclass(slots=True, frozen=True)
class WebhookResult:
    event: str
    reference: str | None
    outcome: str
