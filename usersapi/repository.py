"""Repository abstraction for user records and its in-memory implementation."""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from .errors import UserNotFoundError
from .models import UserEntity


@dataclass(frozen=True)
class PageSlice:
    """A window of users together with the size of the whole collection."""

    items: List[UserEntity]
    total_count: int


class UserRepository(ABC):
    """Key-value store of users keyed by identifier."""

    @abstractmethod
    def find_by_id(self, user_id: UUID) -> Optional[UserEntity]:
        """Return the stored user or ``None``."""

    @abstractmethod
    def insert(self, entity: UserEntity) -> UserEntity:
        """Store a new user, assigning an identifier when it has none."""

    @abstractmethod
    def update(self, entity: UserEntity) -> UserEntity:
        """Overwrite an existing user. Raises :class:`UserNotFoundError`."""

    @abstractmethod
    def update_or_insert(self, entity: UserEntity) -> Tuple[UserEntity, bool]:
        """Store ``entity`` and report whether it was newly inserted."""

    @abstractmethod
    def delete(self, user_id: UUID) -> bool:
        """Remove the user, returning ``False`` when nothing was stored."""

    @abstractmethod
    def get_page(self, page_number: int, page_size: int) -> PageSlice:
        """Return the 1-based page ``page_number`` of ``page_size`` users."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored users."""


class InMemoryUserRepository(UserRepository):
    """Dictionary-backed repository; every operation holds the lock."""

    def __init__(self) -> None:
        self._users: Dict[UUID, UserEntity] = {}
        self._lock = threading.Lock()

    def find_by_id(self, user_id: UUID) -> Optional[UserEntity]:
        with self._lock:
            return self._users.get(user_id)

    def insert(self, entity: UserEntity) -> UserEntity:
        stored = entity if entity.id is not None else replace(entity, id=uuid.uuid4())
        with self._lock:
            if stored.id in self._users:
                raise ValueError(f"User '{stored.id}' already exists")
            self._users[stored.id] = stored
        return stored

    def update(self, entity: UserEntity) -> UserEntity:
        with self._lock:
            if entity.id is None or entity.id not in self._users:
                raise UserNotFoundError(entity.id)
            self._users[entity.id] = entity
        return entity

    def update_or_insert(self, entity: UserEntity) -> Tuple[UserEntity, bool]:
        if entity.id is None:
            return self.insert(entity), True
        with self._lock:
            inserted = entity.id not in self._users
            self._users[entity.id] = entity
        return entity, inserted

    def delete(self, user_id: UUID) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None

    def get_page(self, page_number: int, page_size: int) -> PageSlice:
        if page_number < 1:
            raise ValueError("Page number must be at least 1")
        if page_size < 1:
            raise ValueError("Page size must be at least 1")
        start = (page_number - 1) * page_size
        with self._lock:
            users = list(self._users.values())
        return PageSlice(items=users[start : start + page_size], total_count=len(users))

    def count(self) -> int:
        with self._lock:
            return len(self._users)


__all__ = ["InMemoryUserRepository", "PageSlice", "UserRepository"]
