import threading
import time

from src.models.observation import StatusObservation


class ObservationLog:
    """Thread-safe record of status observations, keyed by partner user id."""

    def __init__(self):
        self._observations: list[StatusObservation] = []
        self._cond = threading.Condition()

    def record(self, observation: StatusObservation) -> None:
        with self._cond:
            self._observations.append(observation)
            self._cond.notify_all()

    def get_observations(self, partner_user_id: str | None = None) -> list[StatusObservation]:
        with self._cond:
            if partner_user_id is None:
                return list(self._observations)
            return [o for o in self._observations if o.partner_user_id == partner_user_id]

    def get_terminal(self, partner_user_id: str) -> StatusObservation | None:
        with self._cond:
            return self._find_terminal(partner_user_id)

    def wait_for_terminal(self, partner_user_id: str, timeout: float) -> StatusObservation | None:
        """Block until a terminal observation for the id arrives or timeout elapses."""
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                found = self._find_terminal(partner_user_id)
                if found is not None:
                    return found
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def clear(self) -> None:
        with self._cond:
            self._observations.clear()

    def _find_terminal(self, partner_user_id: str) -> StatusObservation | None:
        for o in self._observations:
            if o.partner_user_id == partner_user_id and o.is_terminal:
                return o
        return None
