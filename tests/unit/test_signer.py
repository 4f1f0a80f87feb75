import base64

import jwt
import pytest
from cryptography.hazmat.primitives import serialization

from src.errors import ConfigurationError
from src.models.credential import ApiCredential
from src.onramp.signer import TokenSigner, format_request_uri

HOST = "api.developer.coinbase.com"
PATH = "/onramp/v1/token"
FIXED_NOW = 1_718_000_000


def _unverified(token: str) -> tuple[dict, dict]:
    return jwt.get_unverified_header(token), jwt.decode(token, options={"verify_signature": False})


class TestSignEC:
    """Tests for TokenSigner.sign() with a PEM EC key."""

    @pytest.mark.unit
    def test_token_verifies_with_public_key(self, signer, ec_private_key):
        token = signer.sign("POST", HOST, PATH)
        claims = jwt.decode(token, ec_private_key.public_key(), algorithms=["ES256"])
        assert claims["sub"] == signer.credential.key_id
        assert claims["iss"] == "cdp"
        assert claims["uris"] == [f"POST {HOST}{PATH}"]

    @pytest.mark.unit
    def test_header_carries_key_id_and_nonce(self, signer):
        header, _ = _unverified(signer.sign("POST", HOST, PATH))
        assert header["alg"] == "ES256"
        assert header["kid"] == signer.credential.key_id
        assert header["typ"] == "JWT"
        assert len(header["nonce"]) == 32
        int(header["nonce"], 16)

    @pytest.mark.unit
    def test_default_expiry_is_two_minutes(self, signer):
        _, claims = _unverified(signer.sign("POST", HOST, PATH, now=FIXED_NOW))
        assert claims["nbf"] == FIXED_NOW
        assert claims["exp"] == FIXED_NOW + 120

    @pytest.mark.unit
    def test_fixed_time_gives_identical_claims(self, signer):
        header_a, claims_a = _unverified(signer.sign("GET", HOST, PATH, now=FIXED_NOW))
        header_b, claims_b = _unverified(signer.sign("GET", HOST, PATH, now=FIXED_NOW))
        assert claims_a == claims_b
        assert header_a.pop("nonce") != header_b.pop("nonce")
        assert header_a == header_b

    @pytest.mark.unit
    def test_build_claims_is_deterministic(self, signer):
        a = signer.build_claims("GET", HOST, PATH, now=FIXED_NOW)
        b = signer.build_claims("GET", HOST, PATH, now=FIXED_NOW)
        assert a == b

    @pytest.mark.unit
    def test_different_paths_give_different_uris(self, signer):
        _, token_claims = _unverified(signer.sign("POST", HOST, PATH, now=FIXED_NOW))
        _, status_claims = _unverified(
            signer.sign("GET", HOST, "/onramp/v1/buy/user/u1/transactions", now=FIXED_NOW)
        )
        assert token_claims["uris"] != status_claims["uris"]
        assert status_claims["uris"] == [f"GET {HOST}/onramp/v1/buy/user/u1/transactions"]

    @pytest.mark.unit
    def test_method_is_uppercased(self):
        assert format_request_uri("get", HOST, PATH) == f"GET {HOST}{PATH}"


class TestSignEd25519:
    """Tests for TokenSigner.sign() with a base64 Ed25519 key."""

    @pytest.mark.unit
    def test_token_verifies_with_public_key(self, ed25519_secret, ed25519_private_key):
        signer = TokenSigner(ApiCredential("key-ed", ed25519_secret))
        token = signer.sign("POST", HOST, PATH)
        assert jwt.get_unverified_header(token)["alg"] == "EdDSA"
        claims = jwt.decode(token, ed25519_private_key.public_key(), algorithms=["EdDSA"])
        assert claims["uris"] == [f"POST {HOST}{PATH}"]

    @pytest.mark.unit
    def test_bare_32_byte_seed_is_accepted(self, ed25519_private_key):
        seed = ed25519_private_key.private_bytes(
            serialization.Encoding.Raw,
            serialization.PrivateFormat.Raw,
            serialization.NoEncryption(),
        )
        signer = TokenSigner(ApiCredential("key-ed", base64.b64encode(seed).decode()))
        token = signer.sign("POST", HOST, PATH)
        jwt.decode(token, ed25519_private_key.public_key(), algorithms=["EdDSA"])

    @pytest.mark.unit
    def test_algorithm_reports_eddsa(self, ed25519_secret):
        signer = TokenSigner(ApiCredential("key-ed", ed25519_secret))
        assert signer.algorithm == "EdDSA"


class TestSignErrors:
    """Failure modes of TokenSigner."""

    @pytest.mark.unit
    @pytest.mark.parametrize("key_id,key_secret", [("", "secret"), ("key", ""), ("", "")])
    def test_missing_key_material_raises_configuration_error(self, key_id, key_secret):
        with pytest.raises(ConfigurationError):
            TokenSigner(ApiCredential(key_id, key_secret))

    @pytest.mark.unit
    @pytest.mark.parametrize("expires_in", [0, -1, 301, 3600])
    def test_expiry_out_of_range_rejected(self, signer, expires_in):
        with pytest.raises(ValueError):
            signer.sign("POST", HOST, PATH, expires_in=expires_in)

    @pytest.mark.unit
    def test_undecodable_secret_error_propagates(self):
        signer = TokenSigner(ApiCredential("key", "not base64 at all!"))
        with pytest.raises(ValueError):
            signer.sign("POST", HOST, PATH)

    @pytest.mark.unit
    def test_wrong_length_ed25519_secret_rejected(self):
        signer = TokenSigner(ApiCredential("key", base64.b64encode(b"x" * 16).decode()))
        with pytest.raises(ValueError, match="32 or 64 bytes"):
            signer.sign("POST", HOST, PATH)

    @pytest.mark.unit
    def test_credential_repr_hides_secret(self, credential):
        assert credential.key_secret not in repr(credential)
        assert credential.masked_key_id == credential.key_id[:8] + "..."
