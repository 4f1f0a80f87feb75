from dataclasses import dataclass, field
from datetime import datetime, timezone

from src.models.transaction import Transaction, TransactionStatus


@dataclass
class StatusObservation:
    partner_user_id: str | None
    status: TransactionStatus | None  # None: no transaction yet
    source: str  # "polling" or "webhook"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempt: int | None = None
    transaction: Transaction | None = None
    event_type: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal


@dataclass
class StatusOutcome:
    partner_user_id: str
    source: str
    observations: list[StatusObservation] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return len(self.observations)

    @property
    def final_status(self) -> TransactionStatus | None:
        for observation in reversed(self.observations):
            if observation.status is not None:
                return observation.status
        return None

    @property
    def is_terminal(self) -> bool:
        return self.final_status is not None and self.final_status.is_terminal

    @property
    def transaction(self) -> Transaction | None:
        for observation in reversed(self.observations):
            if observation.transaction is not None:
                return observation.transaction
        return None
