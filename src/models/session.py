from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from src.errors import SessionTokenError


SESSION_TOKEN_TTL = timedelta(minutes=5)


@dataclass
class AddressEntry:
    address: str
    blockchains: list[str]


@dataclass
class SessionTokenRequest:
    addresses: list[AddressEntry]
    assets: list[str] | None = None

    @classmethod
    def for_address(
        cls,
        address: str,
        networks: list[str],
        assets: list[str] | None = None,
    ) -> "SessionTokenRequest":
        """Build a request for a single wallet address on one or more networks."""
        return cls(addresses=[AddressEntry(address, list(networks))], assets=assets)

    def to_payload(self) -> dict:
        payload = {
            "addresses": [
                {"address": a.address, "blockchains": list(a.blockchains)}
                for a in self.addresses
            ],
        }
        if self.assets:
            payload["assets"] = list(self.assets)
        return payload


@dataclass
class SessionToken:
    """Opaque single-use token returned by the token endpoint.

    The provider rejects a token after one checkout attempt or five minutes,
    whichever comes first, so ``consume()`` hands out the value only once.
    """

    token: str = field(repr=False)
    channel_id: str | None = None
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _used: bool = field(default=False, repr=False)

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + SESSION_TOKEN_TTL

    @property
    def used(self) -> bool:
        return self._used

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def consume(self, now: datetime | None = None) -> str:
        if self._used:
            raise SessionTokenError("session token has already been used")
        if self.is_expired(now):
            raise SessionTokenError(
                f"session token expired at {self.expires_at.isoformat()}"
            )
        self._used = True
        return self.token
