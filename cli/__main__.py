#!/usr/bin/env python3
"""
Centavo CLI - command-line interface for the expense classification core.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    users        Manage users
    categories   Manage the category tree
    expenses     Submit, review and confirm expenses
    learning     Inspect and maintain learned keyword weights
    migrate      Database migrations

Examples:
    python -m cli migrate apply
    python -m cli categories seed
    python -m cli users create 12345 --name Ana
    python -m cli expenses add --user 12345 --amount 50 "tacos al pastor"
    python -m cli expenses confirm 1 --user 12345 --category fast_food
    python -m cli learning decay
"""

import sys
import argparse
from cli import users, categories, expenses, learning, migrate
from config import load_config
from db.manager import DatabaseManager
from errors import CentavoError, DuplicateTransition
from logger import get_logger, setup_logging
from services.base import Services

logger = get_logger()


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Centavo - Expense categorization with per-user learning",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Create subparsers for each command
    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    # Register each command's subparser
    users.setup_parser(subparsers)
    categories.setup_parser(subparsers)
    expenses.setup_parser(subparsers)
    learning.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    # Parse arguments and execute
    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        config = load_config()
        setup_logging(config)

        if args.command == "migrate":
            # Migrate commands need db_manager for raw database operations
            args.func(args, DatabaseManager(config))
        else:
            args.func(args, Services(config))
    except DuplicateTransition as e:
        # Duplicate deliveries are expected; report and move on
        logger.info(f"{e.user_message} ({e})")
    except CentavoError as e:
        logger.debug(f"{type(e).__name__}: {e}")
        print(f"Error: {e.user_message}")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
