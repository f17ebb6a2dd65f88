"""Errors raised at the upstream I/O boundary."""


class PollerError(Exception):
    """Base class for recoverable poller errors."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class NetworkError(PollerError):
    """The request could not be sent or the connection failed."""


class ReadError(PollerError):
    """The response body could not be read completely."""


class DecodeError(PollerError):
    """The response body is not the JSON shape we expected."""
