import logging
import os
from dataclasses import dataclass, field

from dotenv import dotenv_values, find_dotenv

from src.errors import ConfigurationError
from src.models.credential import ApiCredential
from src.onramp.checkout import DEFAULT_PAY_URL
from src.onramp.client import OnrampClient

STATUS_STRATEGIES = ("polling", "webhook")


@dataclass
class OnrampConfig:
    key_name: str
    key_secret: str = field(repr=False)
    api_base_url: str = OnrampClient.DEFAULT_BASE_URL
    pay_base_url: str = DEFAULT_PAY_URL
    status_strategy: str = "polling"
    poll_max_attempts: int = 5
    poll_interval_seconds: float = 5.0
    webhook_timeout_seconds: float = 300.0
    webhook_host: str = "127.0.0.1"
    webhook_port: int = 3000
    webhook_path: str = "/webhook/coinbase"
    webhook_signature_secret: str | None = field(default=None, repr=False)
    http_timeout_seconds: float = 30.0
    log_level: str = "INFO"

    @property
    def credential(self) -> ApiCredential:
        return ApiCredential(key_id=self.key_name, key_secret=self.key_secret)


def load_config(env: dict | None = None, dotenv_path: str | None = None) -> OnrampConfig:
    """Build config from ``env`` or from ``.env`` layered under ``os.environ``.

    Raises ``ConfigurationError`` when key material is missing or a value
    cannot be parsed.
    """
    if env is None:
        env = {**dotenv_values(dotenv_path or find_dotenv(usecwd=True)), **os.environ}
    values = {k: v for k, v in env.items() if v is not None}

    key_name = values.get("KEY_NAME", "").strip()
    key_secret = values.get("KEY_SECRET", "").strip()
    if not key_name or not key_secret:
        raise ConfigurationError("Missing required environment variables: KEY_SECRET or KEY_NAME")

    strategy = values.get("ONRAMP_STATUS_STRATEGY", "polling").strip().lower()
    if strategy not in STATUS_STRATEGIES:
        raise ConfigurationError(
            f"ONRAMP_STATUS_STRATEGY must be one of {STATUS_STRATEGIES}, got {strategy!r}"
        )

    config = OnrampConfig(
        key_name=key_name,
        # PEM keys pasted into .env usually carry literal \n escapes
        key_secret=key_secret.replace("\\n", "\n"),
        api_base_url=values.get("ONRAMP_API_BASE_URL", OnrampClient.DEFAULT_BASE_URL),
        pay_base_url=values.get("ONRAMP_PAY_BASE_URL", DEFAULT_PAY_URL),
        status_strategy=strategy,
        poll_max_attempts=_parse(values, "ONRAMP_POLL_MAX_ATTEMPTS", int, 5),
        poll_interval_seconds=_parse(values, "ONRAMP_POLL_INTERVAL_SECONDS", float, 5.0),
        webhook_timeout_seconds=_parse(values, "ONRAMP_WEBHOOK_TIMEOUT_SECONDS", float, 300.0),
        webhook_host=values.get("WEBHOOK_HOST", "127.0.0.1"),
        webhook_port=_parse(values, "PORT", int, 3000),
        webhook_path=values.get("WEBHOOK_PATH", "/webhook/coinbase"),
        webhook_signature_secret=values.get("WEBHOOK_SIGNATURE_SECRET") or None,
        http_timeout_seconds=_parse(values, "ONRAMP_HTTP_TIMEOUT_SECONDS", float, 30.0),
        log_level=values.get("LOG_LEVEL", "INFO").upper(),
    )
    if config.poll_max_attempts < 1:
        raise ConfigurationError("ONRAMP_POLL_MAX_ATTEMPTS must be at least 1")
    if config.poll_interval_seconds < 0:
        raise ConfigurationError("ONRAMP_POLL_INTERVAL_SECONDS must not be negative")
    if not isinstance(logging.getLevelName(config.log_level), int):
        raise ConfigurationError(f"LOG_LEVEL has invalid value {config.log_level!r}")
    return config


def _parse(values: dict, name: str, cast, default):
    raw = values.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} has invalid value {raw!r}") from e
