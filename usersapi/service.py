"""Application factory for the users HTTP API."""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .api import register_user_routes, request_validation_handler
from .config import SeedUser, ServiceSettings
from .dto import NewUserDto, ReplaceUserDto
from .errors import ValidationFailedError
from .mapping import MappingRules, build_default_mapping_rules
from .reconciler import UserReconciler
from .repository import InMemoryUserRepository, UserRepository

logger = logging.getLogger("usersapi.service")


def _load_seed_users(reconciler: UserReconciler, seeds: Iterable[SeedUser]) -> int:
    loaded = 0
    for seed in seeds:
        payload = seed.to_payload()
        try:
            if seed.id is not None:
                reconciler.replace(seed.id, ReplaceUserDto.model_validate(payload))
            else:
                reconciler.create(NewUserDto.model_validate(payload))
        except ValidationFailedError as exc:
            raise ValueError(f"Invalid seed user '{seed.login}': {exc.errors}") from exc
        loaded += 1
    return loaded


def create_app(
    *,
    settings: ServiceSettings | None = None,
    repository: UserRepository | None = None,
    mapping: MappingRules | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application serving the users resource."""

    settings = settings or ServiceSettings()
    repository = repository or InMemoryUserRepository()
    mapping = mapping or build_default_mapping_rules()
    reconciler = UserReconciler(repository, mapping)

    app = FastAPI(
        title=settings.title,
        version="1.0.0",
        description="Create, read, replace, patch, delete and page through users.",
    )
    app.state.settings = settings
    app.state.repository = repository
    app.state.mapping = mapping
    app.state.reconciler = reconciler

    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/healthz", tags=["service"])
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    register_user_routes(app, reconciler, mapping)

    if settings.seed_users:
        loaded = _load_seed_users(reconciler, settings.seed_users)
        logger.info("Loaded %d seed user(s)", loaded)

    return app


__all__ = ["create_app"]
