"""In-memory user storage for the demo users API."""

from __future__ import annotations

import itertools
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from loadprobe._internal.errors import LoadProbeError


class UserNotFoundError(LoadProbeError):
    """Raised when a user id does not exist."""


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


class UserStore:
    """Users keyed by an auto-incrementing id starting at 1.

    Every method is synchronous and runs on the server's event loop, so no
    locking is needed.
    """

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._users)

    def create(self, name: str, email: str) -> User:
        user = User(id=next(self._ids), name=name, email=email, created_at=datetime.now(tz=UTC))
        self._users[user.id] = user
        return user

    def get(self, user_id: int) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise UserNotFoundError(f"user {user_id} not found") from None

    def list_all(self) -> list[User]:
        return list(self._users.values())

    def update(self, user_id: int, name: str, email: str) -> User:
        user = self.get(user_id)
        updated = User(id=user.id, name=name, email=email, created_at=user.created_at)
        self._users[user_id] = updated
        return updated

    def delete(self, user_id: int) -> None:
        self.get(user_id)
        del self._users[user_id]
