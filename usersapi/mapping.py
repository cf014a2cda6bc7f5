"""Conversion rules between stored entities and wire DTOs."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Tuple, Type, TypeVar

from .dto import NewUserDto, ReplaceUserDto, UserDto
from .models import UserEntity

T = TypeVar("T")

Converter = Callable[[Any], Any]
Merger = Callable[[Any, Any], Any]


class MappingRules:
    """Registry of conversions keyed by ``(source type, target type)``.

    Built once when the application starts and passed to whatever needs it.
    """

    def __init__(self) -> None:
        self._converters: Dict[Tuple[type, type], Converter] = {}
        self._mergers: Dict[Tuple[type, type], Merger] = {}

    def register(self, source: type, target: type, converter: Converter) -> None:
        self._converters[(source, target)] = converter

    def register_merge(self, source: type, target: type, merger: Merger) -> None:
        self._mergers[(source, target)] = merger

    def map(self, value: Any, target: Type[T]) -> T:
        """Convert ``value`` into a new instance of ``target``."""

        try:
            converter = self._converters[(type(value), target)]
        except KeyError as exc:
            raise LookupError(
                f"No mapping rule from {type(value).__name__} to {target.__name__}"
            ) from exc
        return converter(value)

    def merge(self, value: Any, destination: T) -> T:
        """Apply ``value`` onto ``destination`` and return the merged result."""

        try:
            merger = self._mergers[(type(value), type(destination))]
        except KeyError as exc:
            raise LookupError(
                f"No merge rule from {type(value).__name__} onto {type(destination).__name__}"
            ) from exc
        return merger(value, destination)


def _entity_to_dto(entity: UserEntity) -> UserDto:
    return UserDto(
        id=entity.id,
        login=entity.login,
        full_name=f"{entity.last_name} {entity.first_name}",
        games_played=entity.games_played,
        current_game_id=entity.current_game_id,
    )


def _request_to_entity(dto: NewUserDto | ReplaceUserDto) -> UserEntity:
    return UserEntity(
        id=None,
        login=dto.login or "",
        first_name=dto.first_name or "",
        last_name=dto.last_name or "",
    )


def _entity_to_update_view(entity: UserEntity) -> ReplaceUserDto:
    return ReplaceUserDto(
        login=entity.login,
        first_name=entity.first_name,
        last_name=entity.last_name,
    )


def _merge_replacement(dto: ReplaceUserDto, entity: UserEntity) -> UserEntity:
    return replace(
        entity,
        login=dto.login or "",
        first_name=dto.first_name or "",
        last_name=dto.last_name or "",
    )


def build_default_mapping_rules() -> MappingRules:
    rules = MappingRules()
    rules.register(UserEntity, UserDto, _entity_to_dto)
    rules.register(NewUserDto, UserEntity, _request_to_entity)
    rules.register(ReplaceUserDto, UserEntity, _request_to_entity)
    rules.register(UserEntity, ReplaceUserDto, _entity_to_update_view)
    rules.register_merge(ReplaceUserDto, UserEntity, _merge_replacement)
    return rules


__all__ = ["MappingRules", "build_default_mapping_rules"]
