"""Who is signed in, and which paths they may navigate to."""

import enum
import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from models import Identity

logger = logging.getLogger("shopease.auth")


class GuardState(enum.Enum):
    PENDING = "pending"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Admission:
    """Outcome of a route check: go ahead, wait, or redirect."""

    allowed: bool
    redirect_to: Optional[str] = None
    pending: bool = False


def _under(path: str, prefix: str) -> bool:
    if prefix == "/":
        return path == "/"
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


class SessionGuard:
    """Authentication state machine plus the route admission policy.

    ``PENDING`` until :meth:`restore` runs, then ``UNAUTHENTICATED`` or
    ``AUTHENTICATED``. :meth:`login` and :meth:`logout` move between the two
    and keep the persisted identity in step.

    Admin paths send visitors to ``login_path``; other guarded paths send
    them to ``sign_in_path``, which falls back to ``login_path``.
    """

    def __init__(
        self,
        storage,
        key: str = "user",
        public_paths=("/", "/products", "/login", "/admin/login"),
        admin_prefix: str = "/admin",
        login_path: str = "/admin/login",
        sign_in_path: Optional[str] = None,
    ):
        self.storage = storage
        self.key = key
        self.public_paths = tuple(public_paths)
        self.admin_prefix = admin_prefix
        self.login_path = login_path
        self.sign_in_path = sign_in_path or login_path
        self.state = GuardState.PENDING
        self.user: Optional[Identity] = None
        self._listeners: list[Callable[["SessionGuard", str], None]] = []
        self._durable = False

    #      Lifecycle
    def restore(self) -> GuardState:
        """Pick up a previously persisted identity; a corrupt record is cleared."""
        self._durable = self.storage.is_available()
        self.user = None
        self.state = GuardState.UNAUTHENTICATED
        if not self._durable:
            return self.state

        raw = self.storage.get(self.key)
        if raw is not None:
            try:
                self.user = Identity.from_dict(json.loads(raw))
                self.state = GuardState.AUTHENTICATED
            except (TypeError, ValueError, KeyError, AttributeError):
                logger.warning("Discarding unreadable stored user", exc_info=True)
                self.storage.remove(self.key)
        return self.state

    def subscribe(self, listener: Callable[["SessionGuard", str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    #      Transitions
    def login(self, user_record: dict) -> Identity:
        """Accept the record returned by a successful credential exchange."""
        self.user = Identity.from_dict(user_record)
        self.state = GuardState.AUTHENTICATED
        if self._durable:
            self.storage.set(self.key, json.dumps(self.user.to_dict()))
        logger.info("Session authenticated as %s (%s)", self.user.email, self.user.role)
        self._notify("login")
        return self.user

    def logout(self) -> str:
        """Drop the identity; returns the path the caller must redirect to."""
        if self.user is not None:
            logger.info("Session for %s logged out", self.user.email)
        self.user = None
        self.state = GuardState.UNAUTHENTICATED
        if self._durable:
            self.storage.remove(self.key)
        self._notify("logout")
        return self.login_path

    #      Queries
    @property
    def is_authenticated(self) -> bool:
        return self.state is GuardState.AUTHENTICATED

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.user is not None and self.user.is_admin

    @property
    def current_user(self) -> Optional[Identity]:
        return self.user

    def is_public(self, path: str) -> bool:
        return any(_under(path, p) for p in self.public_paths)

    def admit(self, path: str) -> Admission:
        if self.state is GuardState.PENDING:
            return Admission(allowed=False, pending=True)
        if self.is_public(path):
            return Admission(allowed=True)
        if _under(path, self.admin_prefix):
            if self.is_admin:
                return Admission(allowed=True)
            return Admission(allowed=False, redirect_to=self.login_path)
        if self.is_authenticated:
            return Admission(allowed=True)
        return Admission(allowed=False, redirect_to=self.sign_in_path)

    def _notify(self, action: str) -> None:
        for listener in list(self._listeners):
            listener(self, action)
