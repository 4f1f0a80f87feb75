from dataclasses import dataclass, field
from enum import Enum

from src.models.transaction import TransactionStatus


class WebhookEventType(Enum):
    TRANSACTION_CREATED = "transaction.created"
    TRANSACTION_COMPLETED = "transaction.completed"
    TRANSACTION_FAILED = "transaction.failed"
    SESSION_UPDATED = "onramp.session.updated"


# Status implied by the event kind; session updates carry their own.
EVENT_STATUS = {
    WebhookEventType.TRANSACTION_CREATED: TransactionStatus.PENDING,
    WebhookEventType.TRANSACTION_COMPLETED: TransactionStatus.SUCCESS,
    WebhookEventType.TRANSACTION_FAILED: TransactionStatus.FAILED,
}


@dataclass
class WebhookRegistration:
    id: str
    notification_uri: str | None = None
    event_type: str | None = None
    signature_header: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "WebhookRegistration":
        return cls(
            id=str(data.get("id") or data.get("webhook_id") or ""),
            notification_uri=data.get("notification_uri") or data.get("notificationUri"),
            event_type=data.get("event_type") or data.get("eventType"),
            signature_header=data.get("signature_header"),
        )


@dataclass
class WebhookEvent:
    event_type: str | None
    data: dict
    payload: object
    signature: str = ""
    headers: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload, signature: str = "", headers: dict | None = None) -> "WebhookEvent":
        """Wrap a parsed callback body. Non-object bodies are kept as-is."""
        if isinstance(payload, dict):
            event_type = payload.get("type") or payload.get("eventType") or payload.get("event_type")
            data = payload.get("data")
            if not isinstance(data, dict):
                data = {}
        else:
            event_type = None
            data = {}
        return cls(
            event_type=event_type,
            data=data,
            payload=payload,
            signature=signature,
            headers=headers or {},
        )

    @property
    def kind(self) -> WebhookEventType | None:
        try:
            return WebhookEventType(self.event_type)
        except ValueError:
            return None

    @property
    def transaction_id(self) -> str | None:
        return self.data.get("id") or self.data.get("transaction_id")

    @property
    def partner_user_id(self) -> str | None:
        return self.data.get("partner_user_ref") or self.data.get("partner_user_id")

    @property
    def status(self) -> TransactionStatus | None:
        kind = self.kind
        if kind is None:
            return None
        if kind in EVENT_STATUS:
            return EVENT_STATUS[kind]
        return TransactionStatus.parse(self.data.get("status"))
