class OnrampError(Exception):
    """Base class for errors raised by the onramp client."""


class ConfigurationError(OnrampError):
    """Missing or invalid configuration, raised before any network call."""


class TransportError(OnrampError):
    """Network failure or non-2xx response from the provider."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ResponseParseError(OnrampError):
    """Provider answered 2xx but the body could not be understood."""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body


class SessionTokenError(OnrampError):
    """A session token was reused or used after it expired."""
