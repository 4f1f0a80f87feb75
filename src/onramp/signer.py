import base64
import logging
import secrets
import time

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from src.errors import ConfigurationError
from src.models.credential import ApiCredential

logger = logging.getLogger(__name__)


class TokenSigner:
    """Mints short-lived JWTs for CDP API requests.

    Each token is bound to one ``"<METHOD> <host><path>"`` triple; the
    provider rejects it for any other request. Two key formats are
    accepted: a PEM EC private key (ES256) or a base64 Ed25519 key (EdDSA).
    """

    ISSUER = "cdp"
    DEFAULT_EXPIRES_IN = 120
    MAX_EXPIRES_IN = 300

    def __init__(self, credential: ApiCredential):
        if not credential.key_id or not credential.key_secret:
            raise ConfigurationError("API key id and key secret are both required")
        self.credential = credential

    def sign(
        self,
        method: str,
        host: str,
        path: str,
        expires_in: int = DEFAULT_EXPIRES_IN,
        now: float | None = None,
    ) -> str:
        if not 0 < expires_in <= self.MAX_EXPIRES_IN:
            raise ValueError(
                f"expires_in must be between 1 and {self.MAX_EXPIRES_IN} seconds"
            )
        claims = self.build_claims(method, host, path, expires_in, now)
        logger.debug(
            "Generating JWT for key %s: %s",
            self.credential.masked_key_id,
            claims["uris"][0],
        )
        try:
            key, algorithm = self._load_key()
            return jwt.encode(claims, key, algorithm=algorithm, headers=self.build_headers())
        except Exception:
            logger.error("Error generating JWT for %s", claims["uris"][0])
            raise

    def build_claims(
        self,
        method: str,
        host: str,
        path: str,
        expires_in: int = DEFAULT_EXPIRES_IN,
        now: float | None = None,
    ) -> dict:
        issued_at = int(time.time() if now is None else now)
        return {
            "sub": self.credential.key_id,
            "iss": self.ISSUER,
            "nbf": issued_at,
            "exp": issued_at + expires_in,
            "uris": [format_request_uri(method, host, path)],
        }

    def build_headers(self) -> dict:
        return {
            "kid": self.credential.key_id,
            "typ": "JWT",
            "nonce": secrets.token_hex(16),
        }

    @property
    def algorithm(self) -> str:
        return self._load_key()[1]

    def _load_key(self):
        secret = self.credential.key_secret.strip()
        if secret.startswith("-----BEGIN"):
            key = serialization.load_pem_private_key(secret.encode("utf-8"), password=None)
            if not isinstance(key, ec.EllipticCurvePrivateKey):
                raise ValueError("PEM key secret must be an EC private key")
            return key, "ES256"

        raw = base64.b64decode(secret, validate=True)
        # CDP Ed25519 secrets are seed || public key.
        if len(raw) == 64:
            raw = raw[:32]
        elif len(raw) != 32:
            raise ValueError(f"Ed25519 key secret must decode to 32 or 64 bytes, got {len(raw)}")
        return ed25519.Ed25519PrivateKey.from_private_bytes(raw), "EdDSA"


def format_request_uri(method: str, host: str, path: str) -> str:
    return f"{method.upper()} {host}{path}"
