"""Users CRUD API backed by an in-memory repository."""

from __future__ import annotations

from typing import Any

from .models import UserEntity
from .repository import InMemoryUserRepository, UserRepository


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the users API application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "InMemoryUserRepository",
    "UserEntity",
    "UserRepository",
    "create_app",
]
