"""Exceptions raised by the users API core and translated by the routes."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence
from uuid import UUID


class MalformedRequestError(ValueError):
    """The request body or identifier is missing or unusable."""


class ValidationFailedError(ValueError):
    """One or more fields failed validation.

    ``errors`` maps the wire field name to every message collected for it.
    """

    def __init__(self, errors: Mapping[str, Sequence[str]]) -> None:
        self.errors: Dict[str, List[str]] = {field: list(messages) for field, messages in errors.items()}
        fields = ", ".join(sorted(self.errors)) or "request"
        super().__init__(f"Validation failed for: {fields}")


class UserNotFoundError(KeyError):
    """No user is stored under the requested identifier."""

    def __init__(self, user_id: UUID | None) -> None:
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")

    def __str__(self) -> str:
        return str(self.args[0])


class NotAcceptableError(ValueError):
    """None of the media types in the ``Accept`` header can be produced."""


__all__ = [
    "MalformedRequestError",
    "NotAcceptableError",
    "UserNotFoundError",
    "ValidationFailedError",
]
