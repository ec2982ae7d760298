# Salter: Command Line Entry Point
#
# Non-interactive maintenance commands around the user store:
#   salter hash    hash a password (prompted, never echoed)
#   salter init    create or load the store and enforce the default user
#   salter users   list registered users and their roles

import argparse
import asyncio
import getpass
import logging
import sys

from . import __version__
from .config import load_config
from .exceptions import SalterError
from .password_hasher import PasswordHasher
from .services import build_services

logger = logging.getLogger(__name__)


def _read_password(prompt: str = "Enter a password: ") -> bytearray:
    return bytearray(getpass.getpass(prompt).encode("utf-8"))


def cmd_hash(args) -> int:
    """Prompt for passwords and print hash and salt until the user stops."""
    hasher = PasswordHasher(iterations=args.iterations)

    while True:
        password = _read_password()
        if not password:
            print("Password cannot be empty. Please try again.")
            continue

        password_hash, salt = hasher.generate_hash(password)
        print(f"Generated Hash: {password_hash}")
        print(f"Generated Salt: {salt}")

        if args.once:
            return 0

        response = input("Do you want to hash another password? (y/n): ").strip().lower()
        if response != "y":
            return 0


async def _init_store(services) -> int:
    await services.user_manager.initialize()
    users = services.user_manager.repository.cache
    print(f"Store ready at {services.user_manager.repository.location} ({len(users)} users)")
    return 0


async def _list_users(services) -> int:
    await services.user_manager.initialize()
    print("-- Registered users --")
    print()
    for user in await services.user_manager.get_users():
        marker = " (default)" if user.is_default else ""
        print(f"{user.username} - {user.role.role_name}{marker}")
    return 0


def main(argv=None) -> int:
    """
    Main entry point for Salter.
    """
    parser = argparse.ArgumentParser(
        prog="salter",
        description="Salter - local encrypted credential vault",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Salter v{__version__}"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log operational details to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    hash_parser = subparsers.add_parser("hash", help="Hash a password and print hash and salt")
    hash_parser.add_argument(
        "--iterations",
        type=int,
        default=PasswordHasher.ITERATIONS,
        help=f"PBKDF2 iterations (default: {PasswordHasher.ITERATIONS})"
    )
    hash_parser.add_argument(
        "--once",
        action="store_true",
        help="Hash a single password and exit"
    )

    subparsers.add_parser("init", help="Create or load the user store")
    subparsers.add_parser("users", help="List registered users")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "hash":
            return cmd_hash(args)

        services = build_services(load_config())
        if args.command == "init":
            return asyncio.run(_init_store(services))
        return asyncio.run(_list_users(services))
    except (KeyboardInterrupt, EOFError):
        print()
        return 130
    except SalterError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
