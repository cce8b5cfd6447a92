#!/usr/bin/env python3

import sys
import json
import sqlite3
from config import get_seed_dir
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List the category tree with seed keywords."""
    categories = services.categories.find_all()

    if not categories:
        logger.info("No categories found. Run 'python -m cli categories seed'.")
        return

    children = {}
    for category in categories:
        if category.parent_id is not None:
            children.setdefault(category.parent_id, []).append(category)

    logger.info("\nCategories:")
    logger.info("=" * 80)
    for root in (c for c in categories if c.is_root):
        _log_category(root, 0, args.keywords)
        for child in children.get(root.id, []):
            _log_category(child, 1, args.keywords)

    logger.info(f"\nTotal categories: {len(categories)}")


def _log_category(category, depth, show_keywords):
    indent = "  " * depth
    icon = f"{category.icon} " if category.icon else ""
    inactive = " (inactive)" if not category.is_active else ""
    logger.info(f"{indent}{category.id:>4} {icon}{category.name} [{category.slug}]{inactive}")
    if show_keywords and category.keywords:
        logger.info(f"{indent}       {', '.join(category.keywords)}")


def cmd_create(args, services):
    """Create a new category."""
    parent_id = None
    if args.parent:
        parent = services.categories.find_by_slug(args.parent)
        if not parent:
            logger.error(f"Parent category '{args.parent}' not found.")
            sys.exit(1)
        parent_id = parent.id

    keywords = [kw.strip() for kw in (args.keywords or "").split(",") if kw.strip()]

    try:
        category = services.categories.create(
            args.name,
            args.slug,
            keywords=keywords,
            parent_id=parent_id,
            description=args.description,
            icon=args.icon,
        )
    except sqlite3.IntegrityError:
        logger.error(f"Category with slug '{args.slug}' already exists.")
        sys.exit(1)

    logger.info(f"\n✓ Category created successfully with ID: {category.id}")
    logger.info(f"  Name: {category.name} [{category.slug}]")
    if category.keywords:
        logger.info(f"  Keywords: {', '.join(category.keywords)}")


def cmd_set_active(args, services):
    """Activate or deactivate a category by slug."""
    category = services.categories.find_by_slug(args.slug)
    if not category:
        logger.error(f"Category '{args.slug}' not found.")
        sys.exit(1)

    is_active = args.subcommand == "activate"
    services.categories.set_active(category.id, is_active)
    state = "activated" if is_active else "deactivated"
    logger.info(f"✓ Category '{category.slug}' {state}.")


def cmd_seed(args, services):
    """Seed categories from JSON file."""
    seed_file = get_seed_dir() / "categories.json"

    if not seed_file.exists():
        logger.error(f"Seed file not found: {seed_file}")
        sys.exit(1)

    try:
        with open(seed_file, "r", encoding="utf-8") as f:
            categories_data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing JSON file: {e}")
        sys.exit(1)

    logger.info(f"\nSeeding categories from {seed_file}")
    logger.info("=" * 80)

    created, skipped = services.categories.seed(categories_data)

    logger.info("=" * 80)
    logger.info("\nSeeding complete!")
    logger.info(f"Created: {created}")
    logger.info(f"Skipped: {skipped}")
    logger.info(f"Total: {created + skipped}")


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="List, create, seed and (de)activate expense categories",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    # categories list
    list_parser = categories_subparsers.add_parser("list", help="List all categories")
    list_parser.add_argument(
        "--keywords", action="store_true", help="Show seed keywords"
    )
    list_parser.set_defaults(func=cmd_list)

    # categories create
    create_parser = categories_subparsers.add_parser(
        "create", help="Create a new category"
    )
    create_parser.add_argument("name", help="Display name")
    create_parser.add_argument("slug", help="Unique identifier")
    create_parser.add_argument("--parent", help="Slug of the parent category")
    create_parser.add_argument("--keywords", help="Comma separated seed keywords")
    create_parser.add_argument("--description", help="Description")
    create_parser.add_argument("--icon", help="Emoji icon")
    create_parser.set_defaults(func=cmd_create)

    # categories activate / deactivate
    for name in ("activate", "deactivate"):
        toggle_parser = categories_subparsers.add_parser(
            name, help=f"{name.capitalize()} a category"
        )
        toggle_parser.add_argument("slug", help="Category slug")
        toggle_parser.set_defaults(func=cmd_set_active)

    # categories seed
    seed_parser = categories_subparsers.add_parser(
        "seed", help="Seed categories from JSON file"
    )
    seed_parser.set_defaults(func=cmd_seed)
