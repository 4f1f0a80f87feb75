from .server import OnrampWebhookServer

__all__ = ["OnrampWebhookServer"]
