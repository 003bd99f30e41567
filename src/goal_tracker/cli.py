"""Command-line interface for the goal tracker."""

import argparse
import asyncio
import getpass
import logging
import sys

from goal_tracker.auth.exceptions import HashingError
from goal_tracker.config import get_settings
from goal_tracker.database.connection import close_db, create_tables, get_db, init_db
from goal_tracker.database.users import UserRepository

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _init_db() -> None:
    await init_db()
    try:
        await create_tables()
    finally:
        await close_db()


async def _create_user(username: str, password: str | None, email: str | None):
    settings = get_settings()
    await init_db()
    try:
        async with get_db() as session:
            return await UserRepository(session).create(
                username,
                password=password,
                email=email,
                rounds=settings.password_hash_rounds,
            )
    finally:
        await close_db()


async def _list_users(limit: int):
    await init_db()
    try:
        async with get_db() as session:
            return await UserRepository(session).list(limit)
    finally:
        await close_db()


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from goal_tracker.api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    asyncio.run(_init_db())
    print("Database tables created.")
    return 0


def cmd_user_new(args: argparse.Namespace) -> int:
    username = args.username.strip()
    if not username:
        print("Username cannot be blank.", file=sys.stderr)
        return 1

    # Blank password disables password login for this user
    password = getpass.getpass("password (blank for SSO only): ") or None

    try:
        user = asyncio.run(_create_user(username, password, args.email))
    except HashingError as e:
        print(f"Could not hash password: {e}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.username}")
    return 0


def cmd_user_show(args: argparse.Namespace) -> int:
    users = asyncio.run(_list_users(args.limit))

    print(f"Displaying {len(users)} users")
    for user in users:
        login = "password" if user.hashed_password else "sso only"
        print(f"{user.id}\t{user.username}\t{user.email or '-'}\t{login}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goal-tracker",
        description="Goal Tracker - web app and user administration",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(func=cmd_serve)

    # Init-db command
    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    # User commands
    user_parser = subparsers.add_parser("user", help="Manage user accounts")
    user_subparsers = user_parser.add_subparsers(dest="user_command")

    new_parser = user_subparsers.add_parser("new", help="Create a user")
    new_parser.add_argument("--username", required=True)
    new_parser.add_argument("--email", help="Email used to match SSO logins")
    new_parser.set_defaults(func=cmd_user_new)

    show_parser = user_subparsers.add_parser("show", help="List users")
    show_parser.add_argument("--limit", type=int, default=5)
    show_parser.set_defaults(func=cmd_user_show)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    configure_logging(get_settings().debug)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
