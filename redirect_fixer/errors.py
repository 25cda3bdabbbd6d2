"""Exceptions raised at the edges of the resolution engine."""


class RedirectFixerError(Exception):
    """Base class for all redirect-fixer errors."""


class ConfigError(RedirectFixerError, ValueError):
    """A configuration file or value is invalid."""


class InputFileNotFoundError(RedirectFixerError, FileNotFoundError):
    """The input list for a batch run does not exist."""


class TransportFailure(RedirectFixerError):
    """
    A HEAD request failed before any HTTP status was received.

    `code` is a short machine-readable reason (timeout, connection_error,
    too_many_redirects, request_error); `message` is the transport's text.
    """

    def __init__(self, code: str, message: str = ""):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message
