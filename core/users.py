from __future__ import annotations

import re
from pathlib import Path

from loguru import logger

from core.errors import UserNotFoundError, ValidationError
from core.models import SwitcherConfig

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class UserRegistry:
    """Ordered username list. Numbers are positions at read time, never stored."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @classmethod
    def from_config(cls, config: SwitcherConfig) -> UserRegistry:
        return cls(config.users_file)

    def list_users(self) -> list[str]:
        if not self.path.exists():
            return []
        users: list[str] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            username = line.strip()
            if username and username not in users:
                users.append(username)
        return users

    def _write_all(self, users: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("\n".join(users) + ("\n" if users else ""), encoding="utf-8")

    def add(self, username: str) -> bool:
        username = username.strip()
        if not _USERNAME_PATTERN.match(username):
            raise ValidationError(f"Invalid username format: {username!r}")
        users = self.list_users()
        if username in users:
            return False
        users.append(username)
        self._write_all(users)
        logger.info("Added {} to user list", username)
        return True

    def remove(self, username: str) -> bool:
        users = self.list_users()
        if username not in users:
            return False
        self._write_all([item for item in users if item != username])
        logger.info("Removed {} from user list", username)
        return True

    def number_of(self, username: str) -> int | None:
        users = self.list_users()
        if username not in users:
            return None
        return users.index(username) + 1

    def username_at(self, number: int) -> str:
        users = self.list_users()
        if not users:
            raise UserNotFoundError("No users configured. Use 'ghs add-user <username>' first.")
        if number < 1 or number > len(users):
            raise UserNotFoundError(
                f"User ID {number} not found. Use 'ghs users' to see available users."
            )
        return users[number - 1]

    def resolve(self, ref: str) -> str:
        value = ref.strip()
        if value.isdigit():
            return self.username_at(int(value))
        if not _USERNAME_PATTERN.match(value):
            raise ValidationError(f"Invalid username format: {value!r}")
        return value

    def numbered(self) -> list[tuple[int, str]]:
        return list(enumerate(self.list_users(), start=1))
