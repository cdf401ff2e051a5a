"""Accounts: credential check and user management over the flat-file store."""

import logging
import re
from pathlib import Path

from errors import (
    AuthenticationError,
    AuthorizationError,
    InvariantError,
    NotFoundError,
    ValidationError,
)
from models import ROLES, strip_password
from store import USERS_FILE, JsonStore, new_id

logger = logging.getLogger("shopease.identity")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _required_text(fields: dict, key: str, label: str) -> str:
    value = fields.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def _validated_email(fields: dict) -> str:
    email = _required_text(fields, "email", "Email")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")
    return email


class IdentityService:
    """User CRUD plus login.

    Two rules hold across every mutation: emails are unique ignoring case,
    and at least one ``admin`` account always exists.
    """

    def __init__(self, data_dir: Path):
        self.store = JsonStore(Path(data_dir) / USERS_FILE)

    #      Queries
    def list_users(self) -> list[dict]:
        return [strip_password(u) for u in self.store.load()]

    def get_user(self, user_id: str) -> dict:
        users = self.store.load()
        index = self.store.find_index(users, user_id)
        if index == -1:
            raise NotFoundError("User not found")
        return strip_password(users[index])

    #      Credential exchange
    def authenticate(self, email, password, require_admin: bool = True) -> dict:
        """Exact email + exact password match, linear scan over all accounts."""
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = next(
            (u for u in self.store.load()
             if u.get("email") == email and u.get("password") == password),
            None,
        )
        if user is None:
            logger.info("Login failed for %s", email)
            raise AuthenticationError("Invalid credentials")
        if require_admin and user.get("role") != "admin":
            logger.info("Login refused for non-admin %s", email)
            raise AuthorizationError("Unauthorized: Admin access required")

        logger.info("Login succeeded for %s", email)
        return strip_password(user)

    #      Mutations
    def create_user(self, fields: dict) -> dict:
        if not isinstance(fields, dict):
            raise ValidationError("User must be a JSON object")
        name = _required_text(fields, "name", "Name")
        email = _validated_email(fields)

        users = self.store.load()
        if any(str(u.get("email", "")).lower() == email.lower() for u in users):
            raise ValidationError("User with this email already exists")

        role = fields.get("role")
        user = {
            "id": new_id(),
            "name": name,
            "email": email,
            "role": role if role in ROLES else "user",
        }
        password = fields.get("password")
        if isinstance(password, str) and password:
            user["password"] = password

        users.append(user)
        self.store.save(users)
        logger.info("Created user %s <%s> as %s", user["id"], email, user["role"])
        return strip_password(user)

    def update_user(self, user_id: str, fields: dict) -> dict:
        users = self.store.load()
        index = self.store.find_index(users, user_id)
        if index == -1:
            raise NotFoundError("User not found")
        if not isinstance(fields, dict):
            raise ValidationError("User must be a JSON object")

        current = users[index]
        name = _required_text(fields, "name", "Name")
        email = _validated_email(fields)
        if email.lower() != str(current.get("email", "")).lower() and any(
            str(u.get("email", "")).lower() == email.lower() for u in users
        ):
            raise ValidationError("User with this email already exists")

        role = fields.get("role")
        if role not in ROLES:
            role = current.get("role")
        if current.get("role") == "admin" and role != "admin" and self._admin_count(users) <= 1:
            raise InvariantError("Cannot demote the last admin user")

        updated = {**current, "name": name, "email": email, "role": role, "id": user_id}
        password = fields.get("password")
        if isinstance(password, str) and password:
            updated["password"] = password

        users[index] = updated
        self.store.save(users)
        logger.info("Updated user %s", user_id)
        return strip_password(updated)

    def delete_user(self, user_id: str) -> None:
        users = self.store.load()
        index = self.store.find_index(users, user_id)
        if index == -1:
            raise NotFoundError("User not found")

        if users[index].get("role") == "admin" and self._admin_count(users) <= 1:
            raise InvariantError("Cannot delete the last admin user")

        users.pop(index)
        self.store.save(users)
        logger.info("Deleted user %s", user_id)

    @staticmethod
    def _admin_count(users: list[dict]) -> int:
        return sum(1 for u in users if u.get("role") == "admin")
