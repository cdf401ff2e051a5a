"""Errors raised by the catalog and identity services.

Each carries the HTTP status the request boundary should answer with.
"""


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    """Missing or malformed input."""

    status_code = 400


class InvariantError(ShopError):
    """The mutation would break a store-wide rule (e.g. no admin left)."""

    status_code = 400


class AuthenticationError(ShopError):
    status_code = 401


class AuthorizationError(ShopError):
    status_code = 403


class NotFoundError(ShopError):
    status_code = 404
