"""Cooldown errors."""

from settlement.modules.common import SettlementError


class CooldownActiveError(SettlementError):
    """A beneficiary was sent a data bundle too recently."""

    def __init__(self, phone: str, remaining_seconds: int, remaining_minutes: int) -> None:
        super().__init__(
            f"Please wait {remaining_minutes} minute(s) before ordering another bundle for {phone}"
        )
        self.phone = phone
        self.remaining_seconds = remaining_seconds
        self.remaining_minutes = remaining_minutes
