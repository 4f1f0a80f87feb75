import hashlib
import hmac


def generate_signature(body: bytes | str, secret: str) -> str:
    """Generate an HMAC-SHA256 hex signature over a raw webhook body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes | str, secret: str, signature: str) -> bool:
    """Verify an HMAC-SHA256 hex signature against a raw webhook body."""
    expected = generate_signature(body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())
