import logging
import time

from src.errors import OnrampError
from src.models.observation import StatusObservation, StatusOutcome
from src.onramp.client import OnrampClient
from src.status.log import ObservationLog

logger = logging.getLogger(__name__)


class TransactionStatusPoller:
    """Polls the transaction status endpoint on a fixed interval.

    Stops as soon as the latest transaction reaches a terminal status, or
    after ``max_attempts`` requests. An empty page means the user has not
    started a transaction yet and is not an error.
    """

    source = "polling"

    def __init__(
        self,
        client: OnrampClient,
        max_attempts: int = 5,
        interval_seconds: float = 5.0,
        log: ObservationLog | None = None,
        sleep=time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.log = log
        self._sleep = sleep

    def observe(self, partner_user_id: str) -> StatusOutcome:
        outcome = StatusOutcome(partner_user_id=partner_user_id, source=self.source)
        logger.info(
            "Polling transaction status for %s (max %d attempts)",
            partner_user_id,
            self.max_attempts,
        )

        for attempt in range(1, self.max_attempts + 1):
            observation = self.poll_once(partner_user_id, attempt)
            outcome.observations.append(observation)
            if self.log is not None:
                self.log.record(observation)

            if observation.is_terminal:
                break

            if attempt < self.max_attempts and self.interval_seconds > 0:
                self._sleep(self.interval_seconds)

        if not outcome.is_terminal:
            logger.info(
                "No terminal status for %s after %d attempts",
                partner_user_id,
                outcome.attempts,
            )
        return outcome

    def poll_once(self, partner_user_id: str, attempt: int = 1) -> StatusObservation:
        try:
            page = self.client.get_transactions(partner_user_id, page_size=1)
        except OnrampError:
            logger.error("Attempt %d: status check for %s failed", attempt, partner_user_id)
            raise

        latest = page.latest
        if latest is None:
            logger.info("Attempt %d: no transaction yet", attempt)
            return StatusObservation(
                partner_user_id=partner_user_id,
                status=None,
                source=self.source,
                attempt=attempt,
            )

        logger.info("Attempt %d: status = %s", attempt, latest.status.value)
        return StatusObservation(
            partner_user_id=partner_user_id,
            status=latest.status,
            source=self.source,
            attempt=attempt,
            transaction=latest,
        )
