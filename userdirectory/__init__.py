"""Core utilities for the user directory service."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_url
from .errors import ConstraintViolation, StoreConnectionError, StoreError, UserNotFound
from .models import User


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "ConstraintViolation",
    "Database",
    "StoreConnectionError",
    "StoreError",
    "User",
    "UserNotFound",
    "create_app",
    "resolve_database_url",
]
