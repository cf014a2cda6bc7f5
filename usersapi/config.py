"""Configuration management for the users API service."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple
from uuid import UUID

import yaml

logger = logging.getLogger("usersapi.config")

_LOG_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}


@dataclass(frozen=True)
class SeedUser:
    """A user loaded into the repository when the service starts."""

    login: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    id: Optional[UUID] = None

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedUser":
        if "login" not in data:
            raise ValueError("Seed users must define a 'login'")
        raw_id = data.get("id")
        try:
            user_id = UUID(str(raw_id)) if raw_id else None
        except ValueError as exc:
            raise ValueError(f"Seed user id '{raw_id}' is not a valid UUID") from exc
        first_name = data.get("firstName")
        last_name = data.get("lastName")
        return SeedUser(
            login=str(data["login"]),
            first_name=str(first_name) if first_name is not None else None,
            last_name=str(last_name) if last_name is not None else None,
            id=user_id,
        )

    def to_payload(self) -> Dict[str, object]:
        """Return the seed as a request body keyed by wire field names."""
        payload: Dict[str, object] = {"login": self.login}
        if self.first_name is not None:
            payload["firstName"] = self.first_name
        if self.last_name is not None:
            payload["lastName"] = self.last_name
        return payload


@dataclass(frozen=True)
class ServiceSettings:
    """Settings for the HTTP service, usually read from ``config/service.yaml``."""

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    title: str = "Users API"
    seed_users: Tuple[SeedUser, ...] = field(default_factory=tuple)

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "ServiceSettings":
        """Create :class:`ServiceSettings` from raw dictionary data."""
        defaults = ServiceSettings()

        log_level = str(data.get("log_level", defaults.log_level)).strip().lower()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"Unsupported log level '{log_level}'")

        try:
            port = int(data.get("port", defaults.port))
        except (TypeError, ValueError) as exc:
            raise ValueError("Port must be an integer") from exc
        if not 1 <= port <= 65535:
            raise ValueError("Port must be between 1 and 65535")

        seeds_raw = data.get("seed_users") or []
        if not isinstance(seeds_raw, list):
            raise ValueError("'seed_users' must be a list")

        return ServiceSettings(
            host=str(data.get("host", defaults.host)),
            port=port,
            log_level=log_level,
            title=str(data.get("title", defaults.title)),
            seed_users=tuple(SeedUser.from_dict(item) for item in seeds_raw),
        )

    def with_overrides(self, *, host: Optional[str] = None, port: Optional[int] = None) -> "ServiceSettings":
        return ServiceSettings(
            host=host or self.host,
            port=port or self.port,
            log_level=self.log_level,
            title=self.title,
            seed_users=self.seed_users,
        )


def load_settings(config_path: Path) -> ServiceSettings:
    """Load service settings from a YAML file, falling back to defaults."""
    if not config_path.exists():
        logger.info("No configuration file at %s; using defaults", config_path)
        return ServiceSettings()

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return ServiceSettings.from_dict(raw)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "service.yaml").resolve(strict=False)
    return candidate


__all__ = [
    "SeedUser",
    "ServiceSettings",
    "load_settings",
    "resolve_config_path",
]
