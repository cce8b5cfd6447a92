#!/usr/bin/env python3

import sqlite3
import sys
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List all users."""
    users = services.users.find_all()
    if not users:
        logger.info("No users found.")
        return

    logger.info("\nUsers:")
    logger.info("=" * 60)
    for user in users:
        logger.info(f"{user.id:>4}  {user.external_id:<20} {user.name}")
    logger.info(f"\nTotal users: {len(users)}")


def cmd_create(args, services):
    """Register a user by their chat transport id."""
    try:
        user = services.users.create(args.name or args.external_id, args.external_id)
    except sqlite3.IntegrityError:
        logger.error(f"User with external id '{args.external_id}' already exists.")
        sys.exit(1)
    logger.info(f"✓ User created with ID: {user.id}")


def cmd_delete(args, services):
    """Delete a user together with their expenses and learned weights."""
    user = services.users.find(args.user_id)
    if not user:
        logger.error(f"User with ID {args.user_id} not found.")
        sys.exit(1)

    if not args.yes:
        confirm = (
            input(f"Delete user '{user.name}' and all their data? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    services.users.delete(user.id)
    logger.info(f"✓ User '{user.name}' deleted.")


def setup_parser(subparsers):
    """Setup users subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "users",
        help="Manage users",
        description="Create, list, and delete users",
    )
    users_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available user commands",
        dest="subcommand",
        required=True,
    )

    list_parser = users_subparsers.add_parser("list", help="List all users")
    list_parser.set_defaults(func=cmd_list)

    create_parser = users_subparsers.add_parser("create", help="Create a user")
    create_parser.add_argument("external_id", help="Chat transport identity")
    create_parser.add_argument("--name", help="Display name")
    create_parser.set_defaults(func=cmd_create)

    delete_parser = users_subparsers.add_parser("delete", help="Delete a user by ID")
    delete_parser.add_argument("user_id", type=int, help="ID of the user to delete")
    delete_parser.add_argument(
        "--yes", action="store_true", help="Do not ask for confirmation"
    )
    delete_parser.set_defaults(func=cmd_delete)
