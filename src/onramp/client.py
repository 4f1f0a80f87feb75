import json
import logging
from typing import TYPE_CHECKING
from urllib.parse import quote, urlsplit

import requests

from src.errors import ResponseParseError, TransportError
from src.models.session import SessionToken, SessionTokenRequest
from src.models.transaction import TransactionPage
from src.models.webhook import WebhookRegistration
from src.onramp.signer import TokenSigner

if TYPE_CHECKING:
    from src.config import OnrampConfig

logger = logging.getLogger(__name__)


class OnrampClient:
    """Thin client for the CDP onramp REST API.

    Every call signs its own JWT for the exact method and path it sends,
    so a client instance can be shared across operations. No call is
    retried; failures surface as ``TransportError`` or ``ResponseParseError``.
    """

    DEFAULT_BASE_URL = "https://api.developer.coinbase.com"
    TOKEN_PATH = "/onramp/v1/token"
    TRANSACTIONS_PATH = "/onramp/v1/buy/user/{partner_user_id}/transactions"
    WEBHOOKS_PATH = "/onramp/v1/webhooks"

    def __init__(
        self,
        signer: TokenSigner,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30,
        session: requests.Session | None = None,
    ):
        self.signer = signer
        self.base_url = base_url.rstrip("/")
        self.host = urlsplit(self.base_url).netloc
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: "OnrampConfig") -> "OnrampClient":
        return cls(
            signer=TokenSigner(config.credential),
            base_url=config.api_base_url,
            timeout_seconds=config.http_timeout_seconds,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        self.session.close()

    # -- session tokens ----------------------------------------------------

    def create_session_token(self, request: SessionTokenRequest) -> SessionToken:
        """Exchange a signed JWT for a single-use session token."""
        payload = request.to_payload()
        logger.info(
            "Requesting session token for %d address(es), assets=%s",
            len(payload["addresses"]),
            payload.get("assets", []),
        )
        resp = self._request("POST", self.TOKEN_PATH, json_body=payload)
        body = self._json(resp)

        token = body.get("token") if isinstance(body, dict) else None
        if not token or not isinstance(token, str):
            logger.error("Session token missing from response: %s", resp.text)
            raise ResponseParseError(f"Response has no session token: {resp.text}", body=resp.text)

        logger.info("Session token generated successfully")
        return SessionToken(token=token, channel_id=body.get("channel_id") or None)

    # -- transaction status ------------------------------------------------

    def get_transactions(
        self,
        partner_user_id: str,
        page_size: int = 1,
        page_key: str | None = None,
    ) -> TransactionPage:
        """Fetch the most recent transactions for a partner user id."""
        path = self.TRANSACTIONS_PATH.format(partner_user_id=quote(partner_user_id, safe=""))
        params = {"page_size": page_size}
        if page_key:
            params["page_key"] = page_key

        resp = self._request("GET", path, params=params)
        body = self._json(resp)
        if not isinstance(body, dict):
            raise ResponseParseError(f"Unexpected transaction status response: {resp.text}", body=resp.text)
        try:
            return TransactionPage.from_response(body)
        except ValueError as e:
            logger.error("Malformed transaction status response: %s", resp.text)
            raise ResponseParseError(f"Malformed transaction status response: {e}", body=resp.text) from e

    # -- webhook management ------------------------------------------------

    def create_webhook(
        self,
        notification_uri: str,
        signature_header: str = "X-Webhook-Signature",
    ) -> WebhookRegistration:
        resp = self._request(
            "POST",
            self.WEBHOOKS_PATH,
            json_body={"notification_uri": notification_uri, "signature_header": signature_header},
        )
        body = self._json(resp)
        if not isinstance(body, dict):
            raise ResponseParseError(f"Unexpected create webhook response: {resp.text}", body=resp.text)
        webhook = WebhookRegistration.from_dict(body)
        logger.info("Webhook %s created for %s", webhook.id, notification_uri)
        return webhook

    def list_webhooks(self) -> list[WebhookRegistration]:
        resp = self._request("GET", self.WEBHOOKS_PATH)
        body = self._json(resp)
        if isinstance(body, dict):
            body = body.get("webhooks", body.get("data", []))
        if not isinstance(body, list) or not all(isinstance(item, dict) for item in body):
            raise ResponseParseError(f"Unexpected list webhooks response: {resp.text}", body=resp.text)
        return [WebhookRegistration.from_dict(item) for item in body]

    def delete_webhook(self, webhook_id: str) -> None:
        self._request("DELETE", f"{self.WEBHOOKS_PATH}/{quote(webhook_id, safe='')}")
        logger.info("Webhook %s deleted", webhook_id)

    # -- plumbing ----------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> requests.Response:
        token = self.signer.sign(method, self.host, path)
        headers = {"Authorization": f"Bearer {token}"}
        data = None
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(json_body)

        try:
            resp = self.session.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error("%s %s timed out after %ss", method, path, self.timeout_seconds)
            raise TransportError(f"{method} {path} timed out") from e
        except requests.exceptions.ConnectionError as e:
            logger.error("%s %s connection error: %s", method, path, e)
            raise TransportError(f"{method} {path} connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise TransportError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %d", method, path, resp.status_code)
        if not 200 <= resp.status_code < 300:
            logger.error("%s %s failed: %d %s", method, path, resp.status_code, resp.text)
            raise TransportError(
                f"{method} {path} failed: {resp.status_code} {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return resp

    @staticmethod
    def _json(resp: requests.Response):
        try:
            return resp.json()
        except ValueError as e:
            logger.error("Error parsing JSON response: %s", resp.text)
            raise ResponseParseError(f"Invalid JSON response: {resp.text}", body=resp.text) from e
