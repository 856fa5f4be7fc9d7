"""Request-scoped outcomes raised by the wallet services.

Each exception carries the HTTP status the routing layer answers with.
None of them is retried by the core.
"""


class WalletError(Exception):
    """Base class for terminal, request-scoped wallet outcomes."""

    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class Unauthorized(WalletError):
    """Missing, malformed or wrong bearer credential, or malformed item id."""

    status_code = 401


class NotFound(WalletError):
    """Item, type or registration absent."""

    status_code = 404


class NoContent(WalletError):
    """Valid query with an empty result."""

    status_code = 204


class NotModified(WalletError):
    """Conditional fetch with nothing newer than the client's watermark."""

    status_code = 304


class BadRequest(WalletError):
    """Unparseable request body."""

    status_code = 400
