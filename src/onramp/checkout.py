from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import urlencode

from src.models.session import SessionToken


DEFAULT_PAY_URL = "https://pay.coinbase.com/buy/select-asset"

# (attribute, query parameter) in the order they are appended
_OPTIONAL_PARAMS = [
    ("default_network", "defaultNetwork"),
    ("default_asset", "defaultAsset"),
    ("preset_crypto_amount", "presetCryptoAmount"),
    ("preset_fiat_amount", "presetFiatAmount"),
    ("default_experience", "defaultExperience"),
    ("default_payment_method", "defaultPaymentMethod"),
    ("fiat_currency", "fiatCurrency"),
    ("partner_user_id", "partnerUserId"),
    ("redirect_url", "redirectUrl"),
    ("end_partner_name", "endPartnerName"),
]


@dataclass
class CheckoutParams:
    session_token: str
    default_network: str | None = None
    default_asset: str | None = None
    preset_crypto_amount: int | float | Decimal | None = None
    preset_fiat_amount: int | float | Decimal | None = None
    default_experience: str | None = None  # "buy" or "send"
    default_payment_method: str | None = None
    fiat_currency: str | None = None
    partner_user_id: str | None = None
    redirect_url: str | None = None
    end_partner_name: str | None = None

    @classmethod
    def from_session(cls, token: SessionToken, **kwargs) -> "CheckoutParams":
        """Build params from a session token, consuming it."""
        return cls(session_token=token.consume(), **kwargs)


def build_checkout_url(params: CheckoutParams, base_url: str = DEFAULT_PAY_URL) -> str:
    """Serialize checkout params into a pay URL.

    Only parameters that are set are appended. A crypto amount preset wins
    over a fiat amount preset; the fiat one is dropped.
    """
    if not params.session_token:
        raise ValueError("session_token is required")

    query = [("sessionToken", params.session_token)]
    for attr, name in _OPTIONAL_PARAMS:
        value = getattr(params, attr)
        if not _present(value):
            continue
        if attr == "preset_fiat_amount" and _present(params.preset_crypto_amount):
            continue
        if attr.startswith("preset_"):
            value = _format_amount(value)
        query.append((name, str(value)))

    return f"{base_url}?{urlencode(query)}"


def _present(value) -> bool:
    return value is not None and value != ""


def _format_amount(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
