from typing import Protocol

from src.models.observation import StatusOutcome


class StatusObserver(Protocol):
    """Anything that can watch a tracking id until its transaction settles."""

    def observe(self, partner_user_id: str) -> StatusOutcome:
        ...
