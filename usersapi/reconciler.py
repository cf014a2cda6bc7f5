"""Decide between insert, replace and merge for incoming user writes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Type
from uuid import UUID

from pydantic import BaseModel, ValidationError

from .dto import NewUserDto, ReplaceUserDto
from .errors import MalformedRequestError, UserNotFoundError, ValidationFailedError
from .mapping import MappingRules
from .models import UserEntity
from .repository import UserRepository

logger = logging.getLogger("usersapi.reconciler")

_LOGIN_PATTERN = re.compile(r"[a-zA-Z0-9]+")
_NIL_UUID = UUID(int=0)


class ReconcileOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ReconcileResult:
    user: UserEntity
    outcome: ReconcileOutcome

    @property
    def created(self) -> bool:
        return self.outcome is ReconcileOutcome.CREATED


def _add_error(errors: Dict[str, List[str]], field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def _check_required(errors: Dict[str, List[str]], field: str, value: Optional[str]) -> bool:
    if value is None or not value.strip():
        _add_error(errors, field, f"The {field} field is required")
        return False
    return True


def _check_login(errors: Dict[str, List[str]], login: Optional[str]) -> None:
    if not _check_required(errors, "login", login):
        return
    if not _LOGIN_PATTERN.fullmatch(login):
        _add_error(errors, "login", "Login should contain only letters or digits")


def collect_violations(
    fields: Mapping[str, Any],
    model: Type[BaseModel],
    *,
    require_names: bool,
) -> Dict[str, List[str]]:
    """Return every type and rule violation in ``fields`` keyed by wire field name.

    Rule checks are skipped for a field that already failed its type check.
    """

    errors: Dict[str, List[str]] = {}
    mistyped: Set[str] = set()
    try:
        model.model_validate(fields)
    except ValidationError as exc:
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "body"
            mistyped.add(field)
            _add_error(errors, field, error["msg"])

    if "login" not in mistyped:
        _check_login(errors, fields.get("login"))
    if require_names:
        for name in ("firstName", "lastName"):
            if name not in mistyped:
                _check_required(errors, name, fields.get(name))
    return errors


class UserReconciler:
    """Apply create, full replace and partial update requests to a repository."""

    def __init__(self, repository: UserRepository, mapping: MappingRules) -> None:
        self._repository = repository
        self._mapping = mapping

    @property
    def repository(self) -> UserRepository:
        return self._repository

    def get(self, user_id: UUID) -> UserEntity:
        user = self._repository.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def create(self, dto: Optional[NewUserDto]) -> UserEntity:
        if dto is None:
            raise MalformedRequestError("Request body is required")

        errors = collect_violations(dto.model_dump(by_alias=True), NewUserDto, require_names=False)
        if errors:
            raise ValidationFailedError(errors)

        entity = self._repository.insert(self._mapping.map(dto, UserEntity))
        logger.info("Created user %s (login=%s)", entity.id, entity.login)
        return entity

    def replace(self, user_id: UUID, dto: Optional[ReplaceUserDto]) -> ReconcileResult:
        if dto is None:
            raise MalformedRequestError("Request body is required")
        if user_id == _NIL_UUID:
            raise MalformedRequestError("User identifier must not be empty")

        errors = collect_violations(dto.model_dump(by_alias=True), ReplaceUserDto, require_names=True)
        if errors:
            raise ValidationFailedError(errors)

        existing = self._repository.find_by_id(user_id)
        if existing is not None:
            entity = self._mapping.merge(dto, existing)
        else:
            entity = replace(self._mapping.map(dto, UserEntity), id=user_id)

        stored, inserted = self._repository.update_or_insert(entity)
        outcome = ReconcileOutcome.CREATED if inserted else ReconcileOutcome.UPDATED
        logger.info("Replaced user %s (outcome=%s)", stored.id, outcome.value)
        return ReconcileResult(user=stored, outcome=outcome)

    def patch(self, user_id: UUID, changes: Optional[Mapping[str, Any]]) -> UserEntity:
        """Apply ``changes`` (wire field name to new value) to an existing user."""

        if changes is None:
            raise MalformedRequestError("Patch document is required")

        current = self.get(user_id)
        view = self._mapping.map(current, ReplaceUserDto)
        fields = view.model_dump(by_alias=True)

        errors: Dict[str, List[str]] = {}
        for name, value in changes.items():
            if name not in fields:
                _add_error(errors, name, f"Unknown field '{name}'")
                continue
            fields[name] = value

        for field, messages in collect_violations(fields, ReplaceUserDto, require_names=True).items():
            errors.setdefault(field, []).extend(messages)
        if errors:
            raise ValidationFailedError(errors)

        patched = ReplaceUserDto.model_validate(fields)
        stored = self._repository.update(self._mapping.merge(patched, current))
        logger.info("Patched user %s (fields=%s)", stored.id, ", ".join(sorted(changes)) or "none")
        return stored

    def delete(self, user_id: UUID) -> None:
        if not self._repository.delete(user_id):
            raise UserNotFoundError(user_id)
        logger.info("Deleted user %s", user_id)


__all__ = ["ReconcileOutcome", "ReconcileResult", "UserReconciler", "collect_violations"]
