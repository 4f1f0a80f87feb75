import uuid
from datetime import datetime, timezone

from src.models.transaction import TransactionStatus
from src.models.webhook import WebhookEvent, WebhookEventType


class TransactionFactory:
    """Factory for provider transaction records with sensible defaults."""

    @staticmethod
    def create_record(status: str = "ONRAMP_TRANSACTION_STATUS_IN_PROGRESS", **overrides) -> dict:
        record = {
            "transaction_id": f"tx_{uuid.uuid4().hex[:16]}",
            "status": status,
            "partner_user_ref": f"user_{uuid.uuid4().hex[:8]}",
            "purchase_currency": "ETH",
            "purchase_network": "ethereum",
            "purchase_amount": {"value": "0.05", "currency": "ETH"},
            "payment_total": {"value": "100.00", "currency": "USD"},
            "wallet_address": "0x1234567890123456789012345678901234567890",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        record.update(overrides)
        return record

    @staticmethod
    def create_page(*records: dict, next_page_key: str = "") -> dict:
        return {
            "transactions": list(records),
            "next_page_key": next_page_key,
            "total_count": str(len(records)),
        }


class WebhookFactory:
    """Factory for onramp webhook callback payloads."""

    @staticmethod
    def create_payload(
        event_type: str = WebhookEventType.TRANSACTION_CREATED.value,
        **overrides,
    ) -> dict:
        data = {
            "id": overrides.pop("transaction_id", f"tx_{uuid.uuid4().hex[:16]}"),
            "partner_user_ref": overrides.pop("partner_user_id", f"user_{uuid.uuid4().hex[:8]}"),
            "purchase_currency": overrides.pop("purchase_currency", "ETH"),
            "purchase_amount": overrides.pop("purchase_amount", "0.05"),
        }
        if event_type == WebhookEventType.TRANSACTION_FAILED.value:
            data["error"] = overrides.pop("error", "card_declined")
        elif event_type == WebhookEventType.SESSION_UPDATED.value:
            data["status"] = overrides.pop("status", TransactionStatus.PROCESSING.value)

        data_overrides = overrides.pop("data", None)
        if data_overrides:
            data.update(data_overrides)

        payload = {
            "id": f"evt_{uuid.uuid4().hex[:16]}",
            "type": event_type,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        payload.update(overrides)
        return payload

    @staticmethod
    def create_event(event_type: str = WebhookEventType.TRANSACTION_CREATED.value, **overrides) -> WebhookEvent:
        return WebhookEvent.from_payload(WebhookFactory.create_payload(event_type, **overrides))
