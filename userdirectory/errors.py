"""Exceptions raised by the data access layer."""
from __future__ import annotations


class StoreError(Exception):
    """Base class for failures reported by the relational store.

    The message is the driver's own message so that it can be forwarded to
    clients unchanged.
    """


class StoreConnectionError(StoreError):
    """The store could not be reached."""


class ConstraintViolation(StoreError):
    """A unique, NOT NULL or CHECK constraint rejected a write."""


class UserNotFound(StoreError):
    """No row matched a primary-key lookup."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


__all__ = ["StoreError", "StoreConnectionError", "ConstraintViolation", "UserNotFound"]
