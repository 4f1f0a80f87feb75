from .signer import TokenSigner
from .client import OnrampClient
from .checkout import CheckoutParams, build_checkout_url

__all__ = [
    "TokenSigner",
    "OnrampClient",
    "CheckoutParams",
    "build_checkout_url",
]
