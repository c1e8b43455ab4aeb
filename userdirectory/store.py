"""Capability set the HTTP layer needs from a user store."""
from __future__ import annotations

from typing import Any, List, Protocol

from .models import User


class UserStore(Protocol):
    """Anything that can create, list, fetch, update and delete users.

    ``get_user`` raises :class:`~userdirectory.errors.UserNotFound` for unknown
    ids. ``update_user`` and ``delete_user`` return the affected row count.
    """

    def initialize(self) -> None: ...

    def ping(self) -> None: ...

    def create_user(self, name: Any, email: Any) -> None: ...

    def list_users(self) -> List[User]: ...

    def get_user(self, user_id: int) -> User: ...

    def update_user(self, user_id: int, name: Any, email: Any) -> int: ...

    def delete_user(self, user_id: int) -> int: ...


__all__ = ["UserStore"]
