"""Durable per-browser key/value storage for the cart and the signed-in user.

Values are opaque strings (serialized JSON blobs). Callers ask
``is_available()`` once, at initialisation, and skip write-through when the
capability is missing.
"""

from typing import Optional

from flask import has_request_context, session


class MemoryStorage:
    """Process-local storage; used outside a request and in tests."""

    def __init__(self, available: bool = True):
        self._data: dict[str, str] = {}
        self._available = available

    def is_available(self) -> bool:
        return self._available

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SessionStorage:
    """The Flask signed-cookie session, one entry per key."""

    def is_available(self) -> bool:
        return has_request_context()

    def get(self, key: str) -> Optional[str]:
        return session.get(key)

    def set(self, key: str, value: str) -> None:
        session[key] = value

    def remove(self, key: str) -> None:
        session.pop(key, None)
