"""Domain models stored by the users repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class UserEntity:
    """Represents a user record as held in the repository."""

    id: Optional[UUID]
    login: str
    first_name: str
    last_name: str
    games_played: int = 0
    current_game_id: Optional[UUID] = None


__all__ = ["UserEntity"]
