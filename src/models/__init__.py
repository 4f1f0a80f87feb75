from .credential import ApiCredential
from .session import AddressEntry, SessionToken, SessionTokenRequest
from .transaction import TERMINAL_STATUSES, Transaction, TransactionPage, TransactionStatus
from .webhook import WebhookEvent, WebhookEventType, WebhookRegistration
from .observation import StatusObservation, StatusOutcome

__all__ = [
    "ApiCredential",
    "AddressEntry", "SessionToken", "SessionTokenRequest",
    "TERMINAL_STATUSES", "Transaction", "TransactionPage", "TransactionStatus",
    "WebhookEvent", "WebhookEventType", "WebhookRegistration",
    "StatusObservation", "StatusOutcome",
]
