from dataclasses import dataclass, field
from enum import Enum


class TransactionStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, value: str | None) -> "TransactionStatus":
        """Normalise a provider status string.

        Accepts the short lowercase names as well as the provider's
        ``ONRAMP_TRANSACTION_STATUS_*`` spellings.
        """
        if not value:
            return cls.UNKNOWN
        key = str(value).strip().lower()
        key = key.removeprefix("onramp_transaction_status_")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


TERMINAL_STATUSES = frozenset({
    TransactionStatus.SUCCESS,
    TransactionStatus.FAILED,
    TransactionStatus.CANCELED,
})

_ALIASES = {
    "created": "pending",
    "in_progress": "processing",
    "completed": "success",
    "cancelled": "canceled",
}


@dataclass
class Transaction:
    transaction_id: str | None
    status: TransactionStatus
    partner_user_ref: str | None = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict) -> "Transaction":
        return cls(
            transaction_id=record.get("transaction_id") or record.get("id"),
            status=TransactionStatus.parse(record.get("status")),
            partner_user_ref=record.get("partner_user_ref") or record.get("partner_user_id"),
            raw=dict(record),
        )


@dataclass
class TransactionPage:
    transactions: list[Transaction]
    next_page_key: str | None = None
    total_count: int | None = None

    @classmethod
    def from_response(cls, body: dict) -> "TransactionPage":
        records = body.get("transactions")
        if records is None:
            records = body.get("data") or []
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ValueError(f"transactions must be a list of objects, got {records!r}")
        total = body.get("total_count")
        if total in (None, ""):
            total_count = None
        else:
            try:
                total_count = int(total)
            except (TypeError, ValueError):
                raise ValueError(f"total_count is not an integer: {total!r}") from None
        return cls(
            transactions=[Transaction.from_record(r) for r in records],
            next_page_key=body.get("next_page_key") or None,
            total_count=total_count,
        )

    @property
    def latest(self) -> Transaction | None:
        return self.transactions[0] if self.transactions else None
