"""Command-line interface for the users API service."""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from typing import Sequence

import httpx

from usersapi.config import ServiceSettings, load_settings, resolve_config_path

logger = logging.getLogger("usersapi.main")

_DEFAULT_SERVICE_URL = "http://localhost:8000"
USERS_ENDPOINT = "/api/users"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Users API utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP users API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default from config)")
    serve_parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML settings file (default: USERS_API_CONFIG or config/service.yaml)",
    )

    users_parser = subparsers.add_parser("users", help="List the users of a running service")
    users_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of a running service (default: http://localhost:8000)",
    )
    users_parser.add_argument(
        "--page-size",
        type=int,
        default=20,
        help="Users fetched per request (clamped by the service to 1-20)",
    )

    add_parser = subparsers.add_parser("add-user", help="Create a user on a running service")
    add_parser.add_argument("login", help="Login made of letters and digits")
    add_parser.add_argument("--first-name", default=None, help="First name (service default: John)")
    add_parser.add_argument("--last-name", default=None, help="Last name (service default: Doe)")
    add_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of a running service (default: http://localhost:8000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "users", "add-user"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_settings(config: str | None) -> ServiceSettings:
    config_path = resolve_config_path(config or os.getenv("USERS_API_CONFIG"))
    return load_settings(config_path)


def _service_url(value: str | None) -> str:
    return (value or os.getenv("USERS_API_URL") or _DEFAULT_SERVICE_URL).rstrip("/")


def _serve(settings: ServiceSettings) -> None:
    from usersapi.service import create_app
    import uvicorn

    logger.info("Starting users API on http://%s:%s", settings.host, settings.port)

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


def _list_users(client: httpx.Client, *, page_size: int = 20) -> int:
    """Print every user by following the service's pagination links."""

    url: str | None = USERS_ENDPOINT
    params: dict[str, int] | None = {"pageNumber": 1, "pageSize": page_size}
    users: list[dict[str, object]] = []

    while url:
        try:
            response = client.get(url, params=params, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            print(f"Failed to contact users service: {exc}")
            return 1
        if response.status_code != 200:
            print(f"Service responded with {response.status_code}: {response.text.strip()}")
            return 1

        users.extend(response.json())
        try:
            pagination = json.loads(response.headers.get("X-Pagination", "{}"))
        except ValueError:
            print("Service returned an unexpected pagination header.")
            return 1
        url = pagination.get("nextPageLink")
        params = None

    if not users:
        print("No users are currently registered.")
        return 0

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'Login':<20}  {'Name':<32}  Games")
    print("-" * 100)
    for user in users:
        print(
            f"{user['id']:<36}  {user['login']:<20}  {user['fullName']:<32}  {user['gamesPlayed']}"
        )
    return 0


def _add_user(
    client: httpx.Client,
    login: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
) -> int:
    payload: dict[str, str] = {"login": login}
    if first_name is not None:
        payload["firstName"] = first_name
    if last_name is not None:
        payload["lastName"] = last_name

    try:
        response = client.post(USERS_ENDPOINT, json=payload, headers={"Accept": "application/json"})
    except httpx.HTTPError as exc:
        print(f"Failed to contact users service: {exc}")
        return 1

    if response.status_code == 422:
        errors = response.json().get("detail", {}).get("errors", {})
        for field, messages in errors.items():
            for message in messages:
                print(f"{field}: {message}")
        return 1
    if response.status_code != 201:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    print(f"Created user {response.json()} ({response.headers.get('Location', 'no location')})")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "serve":
        settings = _load_settings(args.config).with_overrides(host=args.host, port=args.port)
        _serve(settings)
        return 0

    with httpx.Client(base_url=_service_url(args.service_url), timeout=10.0) as client:
        if args.command == "users":
            return _list_users(client, page_size=args.page_size)
        if args.command == "add-user":
            return _add_user(
                client,
                args.login,
                first_name=args.first_name,
                last_name=args.last_name,
            )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
