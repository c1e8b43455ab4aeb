"""Command-line interface for the user directory service."""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from typing import Sequence

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Run `pip install -e .` to install dependencies."
    ) from exc

from userdirectory.config import Settings, load_settings
from userdirectory.database import Database
from userdirectory.errors import StoreError

logger = logging.getLogger("userdirectory.main")

_DEFAULT_SERVICE_URL = "http://127.0.0.1:3000"


def _add_database_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL (defaults to USERDIRECTORY_DATABASE_URL or data/users.sqlite3)",
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User directory service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument("--port", type=int, default=None, help="Port for the API (default: 3000)")
    _add_database_option(serve_parser)

    init_parser = subparsers.add_parser("init-db", help="Create the users table if it is missing")
    _add_database_option(init_parser)

    check_parser = subparsers.add_parser("check-db", help="Verify that the database is reachable")
    _add_database_option(check_parser)

    list_parser = subparsers.add_parser("list-users", help="Print the stored users")
    _add_database_option(list_parser)

    ping_parser = subparsers.add_parser("ping", help="Query the health endpoint of a running service")
    ping_parser.add_argument(
        "--service-url",
        default=_DEFAULT_SERVICE_URL,
        help=f"Base URL of a running service (default: {_DEFAULT_SERVICE_URL})",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "check-db", "list-users", "ping"}

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


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings()
    overrides = {}
    if getattr(args, "database_url", None):
        overrides["database_url"] = args.database_url
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None):
        overrides["port"] = args.port
    return replace(settings, **overrides)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_url, echo=settings.echo_sql)
    database.initialize()
    logger.info("Database initialised at %s", database.url)
    return database


def _serve(*, database: Database, settings: Settings) -> None:
    from userdirectory.service import create_app
    import uvicorn

    logger.info("Starting user directory API on http://%s:%s", settings.host, settings.port)

    app = create_app(store=database)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def _check_database(settings: Settings) -> int:
    database = Database(settings.database_url, echo=settings.echo_sql)
    try:
        database.ping()
    except StoreError as exc:
        print(f"Unable to connect to the database: {exc}")
        return 1
    finally:
        database.dispose()
    print(f"Connection to {database.url} has been established successfully.")
    return 0


def _list_users(database: Database) -> None:
    users = database.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<32}  Email")
    print("-" * 80)
    for user in users:
        print(f"{user.id:>4}  {user.name:<32}  {user.email}")


def _ping_service(service_url: str) -> int:
    endpoint = service_url.rstrip("/") + "/healthz"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact user directory service: {exc}")
        return 1

    try:
        payload = response.json()
    except ValueError:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    if response.status_code != 200:
        error = payload.get("error", "unknown error") if isinstance(payload, dict) else payload
        print(f"Service at {service_url} is unhealthy ({response.status_code}): {error}")
        return 1

    print(f"Service at {service_url} is healthy.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = _resolve_settings(args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "ping":
        return _ping_service(args.service_url)
    if args.command == "check-db":
        return _check_database(settings)

    try:
        database = _initialise_database(settings)
    except StoreError as exc:
        print(f"Failed to initialise the database: {exc}")
        return 1

    if args.command == "serve":
        _serve(database=database, settings=settings)
    elif args.command == "list-users":
        _list_users(database)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
