import logging

from src.models.observation import StatusOutcome
from src.status.log import ObservationLog

logger = logging.getLogger(__name__)


class WebhookStatusObserver:
    """Waits for webhook callbacks to report a terminal status.

    Reads from the ``ObservationLog`` the webhook receiver writes into;
    it makes no provider requests of its own.
    """

    source = "webhook"

    def __init__(self, log: ObservationLog, timeout_seconds: float = 300):
        self.log = log
        self.timeout_seconds = timeout_seconds

    def observe(self, partner_user_id: str) -> StatusOutcome:
        logger.info(
            "Waiting up to %ss for webhook status on %s",
            self.timeout_seconds,
            partner_user_id,
        )
        terminal = self.log.wait_for_terminal(partner_user_id, self.timeout_seconds)
        if terminal is None:
            logger.info("No terminal webhook for %s before timeout", partner_user_id)

        observations = self.log.get_observations(partner_user_id)
        if terminal is not None:
            # Drop anything that arrived after the terminal event.
            observations = observations[: observations.index(terminal) + 1]
        return StatusOutcome(
            partner_user_id=partner_user_id,
            source=self.source,
            observations=observations,
        )
