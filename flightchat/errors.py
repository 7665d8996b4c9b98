from typing import Optional


class FlightChatError(Exception):
    """Base class for errors raised by the flight chat service."""


class AmadeusError(FlightChatError):
    """Non-2xx response or transport failure talking to Amadeus."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


class IntentParseError(FlightChatError):
    """The language model reply could not be decoded into an intent."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw
