# Locust load test for the onramp webhook receiver.
#
# How to run:
#   locust -f tests/load/locustfile.py --headless -u 50 -r 10 --run-time 30s --host http://127.0.0.1:8080
#
# The test starts an OnrampWebhookServer on port 8080 via on_test_start/
# on_test_stop events, so no external server is needed. Every callback names
# one of a fixed pool of partner user ids so the ObservationLog is exercised
# under concurrent writes.

import json
import logging
import threading

from locust import HttpUser, between, events, task

from src.models.webhook import WebhookEventType
from src.status.log import ObservationLog
from src.utils.crypto import generate_signature
from src.utils.factories import WebhookFactory
from src.webhook_receiver.server import OnrampWebhookServer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared state: tracking sent vs received for loss assertions
# ---------------------------------------------------------------------------
WEBHOOK_SECRET = "load-test-secret"
PARTNER_USER_IDS = [f"user_load_{i}" for i in range(20)]

_stats_lock = threading.Lock()
_sent_count: int = 0
_success_count: int = 0
_failure_count: int = 0

_server: OnrampWebhookServer | None = None
_log: ObservationLog | None = None

# Event types to rotate through; None sends a body that is not JSON.
EVENT_TYPES = [t.value for t in WebhookEventType] + ["wallet.activity", None]


def _increment(counter: str) -> None:
    global _sent_count, _success_count, _failure_count
    with _stats_lock:
        if counter == "sent":
            _sent_count += 1
        elif counter == "success":
            _success_count += 1
        else:
            _failure_count += 1


# ---------------------------------------------------------------------------
# Locust lifecycle events
# ---------------------------------------------------------------------------
@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Start an OnrampWebhookServer on port 8080 before the load test begins."""
    global _server, _log, _sent_count, _success_count, _failure_count

    with _stats_lock:
        _sent_count = 0
        _success_count = 0
        _failure_count = 0

    _log = ObservationLog()
    _server = OnrampWebhookServer(
        host="127.0.0.1",
        port=8080,
        path="/webhook/coinbase",
        signature_secret=WEBHOOK_SECRET,
        observation_log=_log,
        record_events=True,
    )
    _server.start()
    logger.info("OnrampWebhookServer started on port 8080")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Stop the receiver and report delivery stats."""
    global _server

    received = 0
    observed = 0

    if _server is not None:
        received = _server.get_received_count()
        _server.stop()
        _server = None
        logger.info("OnrampWebhookServer stopped")
    if _log is not None:
        observed = len(_log.get_observations())

    with _stats_lock:
        total_sent = _sent_count
        total_ok = _success_count
        total_fail = _failure_count

    logger.info(
        "Load test summary: sent=%d, expected_ok=%d, unexpected=%d, server_received=%d, observed=%d",
        total_sent,
        total_ok,
        total_fail,
        received,
        observed,
    )

    if total_fail:
        environment.process_exit_code = 1
        logger.error("ASSERTION FAILED: %d responses had an unexpected status", total_fail)
    if received < total_ok:
        environment.process_exit_code = 1
        logger.error(
            "ASSERTION FAILED: %d acknowledged events missing from the receiver",
            total_ok - received,
        )

    # Latency assertion: p95 response time must be below 5000ms (5s)
    for stat in environment.runner.stats.entries.values():
        p95 = stat.get_response_time_percentile(0.95)
        if p95 and p95 > 5000:
            environment.process_exit_code = 1
            logger.error(
                "ASSERTION FAILED: p95 latency %dms exceeds 5000ms for '%s'",
                p95,
                stat.name,
            )


# ---------------------------------------------------------------------------
# Locust user
# ---------------------------------------------------------------------------
class OnrampProviderUser(HttpUser):
    """Simulates the provider delivering signed onramp callbacks."""

    wait_time = between(0.01, 0.05)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._index = 0

    def _next(self) -> tuple[str | None, str]:
        event_type = EVENT_TYPES[self._index % len(EVENT_TYPES)]
        partner_user_id = PARTNER_USER_IDS[self._index % len(PARTNER_USER_IDS)]
        self._index += 1
        return event_type, partner_user_id

    @task
    def deliver_callback(self) -> None:
        """Sign a callback body and POST it; malformed bodies must get 500."""
        event_type, partner_user_id = self._next()
        if event_type is None:
            body = "this is not json {{{"
            expected = 500
        else:
            body = json.dumps(WebhookFactory.create_payload(event_type, partner_user_id=partner_user_id))
            expected = 200

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": generate_signature(body, WEBHOOK_SECRET),
        }

        _increment("sent")

        with self.client.post(
            "/webhook/coinbase",
            data=body,
            headers=headers,
            catch_response=True,
            name=f"/webhook/coinbase [{event_type or 'malformed'}]",
        ) as response:
            if response.status_code == expected:
                if expected == 200:
                    _increment("success")
                response.success()
            else:
                _increment("failure")
                response.failure(
                    f"HTTP {response.status_code} (expected {expected}): {response.text[:200]}"
                )
