import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from src.config import OnrampConfig
from src.models.credential import ApiCredential
from src.onramp.client import OnrampClient
from src.onramp.signer import TokenSigner
from src.status.log import ObservationLog
from src.utils.factories import TransactionFactory, WebhookFactory
from src.webhook_receiver.server import OnrampWebhookServer
from fake_provider import FakeProviderServer


KEY_ID = "organizations/org-test/apiKeys/key-test-0001"
WEBHOOK_SECRET = "test-secret-key-for-hmac"


@pytest.fixture(scope="session")
def ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_key_pem(ec_private_key):
    return ec_private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def ed25519_private_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def ed25519_secret(ed25519_private_key):
    """CDP-style Ed25519 secret: base64(seed || public key)."""
    seed = ed25519_private_key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )
    public = ed25519_private_key.public_key().public_bytes(
        serialization.Encoding.Raw,
        serialization.PublicFormat.Raw,
    )
    return base64.b64encode(seed + public).decode("ascii")


@pytest.fixture
def credential(ec_key_pem):
    return ApiCredential(key_id=KEY_ID, key_secret=ec_key_pem)


@pytest.fixture
def signer(credential):
    return TokenSigner(credential)


@pytest.fixture
def provider():
    server = FakeProviderServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def client(signer, provider):
    with OnrampClient(signer, base_url=provider.url, timeout_seconds=5) as c:
        yield c


@pytest.fixture
def config(ec_key_pem, provider):
    return OnrampConfig(
        key_name=KEY_ID,
        key_secret=ec_key_pem,
        api_base_url=provider.url,
        poll_max_attempts=3,
        poll_interval_seconds=0,
        webhook_timeout_seconds=2,
        webhook_port=0,
        http_timeout_seconds=5,
    )


@pytest.fixture
def observation_log():
    return ObservationLog()


@pytest.fixture
def webhook_server(observation_log):
    server = OnrampWebhookServer(observation_log=observation_log, record_events=True)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def webhook_server_with_auth(observation_log):
    """Webhook receiver that requires an HMAC signature."""
    server = OnrampWebhookServer(
        signature_secret=WEBHOOK_SECRET,
        observation_log=observation_log,
        record_events=True,
    )
    server.start()
    yield server
    server.stop()


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def transaction_factory():
    return TransactionFactory


@pytest.fixture
def webhook_factory():
    return WebhookFactory
