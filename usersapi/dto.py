"""Wire representations accepted from and returned to API callers."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserDto(_WireModel):
    id: UUID
    login: str
    full_name: str = Field(..., description="Last name followed by first name")
    games_played: int = 0
    current_game_id: Optional[UUID] = None


class NewUserDto(_WireModel):
    """Body of a create request. Names fall back to defaults when omitted."""

    login: Optional[str] = Field(default=None, description="Letters and digits only")
    first_name: Optional[str] = Field(default="John")
    last_name: Optional[str] = Field(default="Doe")


class ReplaceUserDto(_WireModel):
    """Body of a full replace and the editable view used by partial updates."""

    login: Optional[str] = Field(default=None, description="Letters and digits only")
    first_name: Optional[str] = None
    last_name: Optional[str] = None


__all__ = ["NewUserDto", "ReplaceUserDto", "UserDto"]
