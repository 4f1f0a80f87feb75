from .crypto import generate_signature, verify_signature
from .factories import TransactionFactory, WebhookFactory
from .tracking import new_partner_user_id

__all__ = [
    "generate_signature", "verify_signature",
    "TransactionFactory", "WebhookFactory",
    "new_partner_user_id",
]
