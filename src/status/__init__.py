from typing import TYPE_CHECKING

from src.errors import ConfigurationError

from .base import StatusObserver
from .log import ObservationLog
from .poller import TransactionStatusPoller
from .webhook_observer import WebhookStatusObserver

if TYPE_CHECKING:
    from src.config import OnrampConfig
    from src.onramp.client import OnrampClient

STRATEGIES = ("polling", "webhook")


def build_status_observer(
    config: "OnrampConfig",
    client: "OnrampClient",
    log: ObservationLog | None = None,
) -> StatusObserver:
    """Pick the status observation strategy named by ``config.status_strategy``."""
    if config.status_strategy == "polling":
        return TransactionStatusPoller(
            client,
            max_attempts=config.poll_max_attempts,
            interval_seconds=config.poll_interval_seconds,
            log=log,
        )
    if config.status_strategy == "webhook":
        if log is None:
            raise ConfigurationError("webhook status strategy needs an ObservationLog fed by the receiver")
        return WebhookStatusObserver(log, timeout_seconds=config.webhook_timeout_seconds)
    raise ConfigurationError(
        f"Unknown status strategy {config.status_strategy!r}; expected one of {STRATEGIES}"
    )


__all__ = [
    "StatusObserver",
    "ObservationLog",
    "TransactionStatusPoller",
    "WebhookStatusObserver",
    "build_status_observer",
    "STRATEGIES",
]
