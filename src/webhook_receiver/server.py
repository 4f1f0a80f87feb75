import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING, Callable, Self

from src.models.observation import StatusObservation
from src.models.webhook import WebhookEvent, WebhookEventType
from src.status.log import ObservationLog
from src.utils.crypto import verify_signature

if TYPE_CHECKING:
    from src.config import OnrampConfig

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/webhook/coinbase"
DEFAULT_SIGNATURE_HEADER = "X-Webhook-Signature"


class _WebhookHandler(BaseHTTPRequestHandler):
    """HTTP request handler for onramp provider callbacks."""

    def do_GET(self):
        if self.path == "/health":
            self._reply(200, "Webhook server is running")
        else:
            self._reply(404, "Not found")

    def do_POST(self):
        receiver: OnrampWebhookServer = self.server.receiver  # type: ignore[attr-defined]
        if self.path.split("?", 1)[0] != receiver.path:
            self._reply(404, "Not found")
            return

        try:
            status, text = self._process(receiver)
        except Exception:
            logger.exception("Error processing webhook")
            status, text = 500, "Error processing webhook"
        self._reply(status, text)

    def _process(self, receiver: "OnrampWebhookServer") -> tuple[int, str]:
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length < 0:
            raise ValueError(f"negative Content-Length: {content_length}")
        body = self.rfile.read(content_length)
        signature = self.headers.get(receiver.signature_header, "")

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error("Error processing webhook: %s", e)
            return 500, "Error processing webhook"

        if receiver.signature_secret:
            if not signature or not verify_signature(body, receiver.signature_secret, signature):
                logger.warning("Rejected webhook with missing or invalid signature")
                return 401, "Invalid signature"
        else:
            # Signature checking is off: every payload is accepted as authentic.
            logger.debug("Webhook signature not verified: %r", signature)

        event = WebhookEvent.from_payload(payload, signature=signature, headers=dict(self.headers))
        receiver.dispatch(event)
        return 200, "Webhook received"

    def _reply(self, code: int, text: str) -> None:
        body = text.encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class OnrampWebhookServer:
    """Threaded HTTP listener for onramp webhook callbacks.

    Any syntactically valid JSON body is acknowledged with 200; a body that
    fails to parse gets 500. Recognised events that name a partner user id
    are recorded in the optional ``ObservationLog`` so a
    ``WebhookStatusObserver`` can pick them up. Raw events are only kept
    for inspection when ``record_events`` is set.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        path: str = DEFAULT_PATH,
        signature_secret: str | None = None,
        signature_header: str = DEFAULT_SIGNATURE_HEADER,
        observation_log: ObservationLog | None = None,
        record_events: bool = False,
    ):
        self._host = host
        self._port = port
        self.path = path
        self.signature_secret = signature_secret
        self.signature_header = signature_header
        self.observation_log = observation_log
        self.record_events = record_events
        self._received: list[WebhookEvent] = []
        self._listeners: list[Callable[[WebhookEvent], None]] = []
        self._lock = threading.Lock()
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._handlers = {
            WebhookEventType.TRANSACTION_CREATED: self._on_created,
            WebhookEventType.TRANSACTION_COMPLETED: self._on_completed,
            WebhookEventType.TRANSACTION_FAILED: self._on_failed,
            WebhookEventType.SESSION_UPDATED: self._on_session_updated,
        }

    @classmethod
    def from_config(
        cls,
        config: "OnrampConfig",
        observation_log: ObservationLog | None = None,
    ) -> "OnrampWebhookServer":
        return cls(
            host=config.webhook_host,
            port=config.webhook_port,
            path=config.webhook_path,
            signature_secret=config.webhook_signature_secret,
            observation_log=observation_log,
        )

    def enable_signature_verification(self, secret: str) -> Self:
        self.signature_secret = secret
        return self

    def add_listener(self, callback: Callable[[WebhookEvent], None]) -> Self:
        self._listeners.append(callback)
        return self

    def dispatch(self, event: WebhookEvent) -> None:
        kind = event.kind
        handler = self._handlers.get(kind, self._on_unknown)
        handler(event)

        with self._lock:
            if self.record_events:
                self._received.append(event)
            listeners = list(self._listeners)

        if kind is not None and event.partner_user_id and self.observation_log is not None:
            self.observation_log.record(StatusObservation(
                partner_user_id=event.partner_user_id,
                status=event.status,
                source="webhook",
                event_type=event.event_type,
            ))

        for listener in listeners:
            listener(event)

    def _on_created(self, event: WebhookEvent) -> None:
        logger.info("New transaction created: %s", event.transaction_id)

    def _on_completed(self, event: WebhookEvent) -> None:
        logger.info("Transaction completed: %s", event.transaction_id)

    def _on_failed(self, event: WebhookEvent) -> None:
        logger.info("Transaction failed: %s %s", event.transaction_id, event.data.get("error"))

    def _on_session_updated(self, event: WebhookEvent) -> None:
        logger.info(
            "Onramp session updated: %s status=%s",
            event.transaction_id,
            event.data.get("status"),
        )

    def _on_unknown(self, event: WebhookEvent) -> None:
        logger.info("Unknown event type: %s", event.event_type)

    # -- lifecycle ---------------------------------------------------------

    def _bind(self) -> ThreadingHTTPServer:
        server = ThreadingHTTPServer((self._host, self._port), _WebhookHandler)
        server.receiver = self  # type: ignore[attr-defined]
        # Get the actual port (useful when port=0)
        self._port = server.server_address[1]
        return server

    def start(self) -> None:
        self._server = self._bind()
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Webhook server listening on %s", self.url)

    def serve_forever(self) -> None:
        """Run in the foreground until interrupted."""
        self._server = self._bind()
        logger.info("Webhook server listening on %s", self.url)
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()
            self._server = None

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.stop()

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self._port}{self.path}"

    @property
    def base_url(self) -> str:
        return f"http://{self._host}:{self._port}"

    @property
    def port(self) -> int:
        return self._port

    def get_received_events(self) -> list[WebhookEvent]:
        with self._lock:
            return list(self._received)

    def get_received_count(self) -> int:
        with self._lock:
            return len(self._received)

    def clear_events(self) -> None:
        with self._lock:
            self._received.clear()
