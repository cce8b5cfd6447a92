#!/usr/bin/env python3

import sys
from logger import get_logger
from services.learned_weights import DECAY_POLICIES

logger = get_logger()


def cmd_decay(args, services):
    """Fade learned weights that have not been used recently."""
    config = services.config
    decayed = services.learned_weights.decay(
        older_than_days=args.days if args.days is not None else config.decay_after_days,
        policy=args.policy or config.decay_policy,
        factor=config.decay_factor,
        step=config.decay_step,
        floor=config.decay_floor,
    )
    logger.info(f"✓ Decayed {decayed} learned weight(s)")


def cmd_stats(args, services):
    """Show what has been learned for a user."""
    user = services.users.find_by_external_id(args.user)
    if not user:
        logger.error(f"User '{args.user}' not found.")
        sys.exit(1)

    stats = services.learned_weights.stats(user.id)
    logger.info(f"\nLearning stats for {user.name}:")
    logger.info(f"  Unique keywords:    {stats['unique_keywords']}")
    logger.info(f"  Categories learned: {stats['categories_learned']}")
    logger.info(f"  Total usage:        {stats['total_usage']}")
    logger.info(f"  Average weight:     {stats['average_weight']}")

    if args.verbose:
        table = services.keyword_table
        logger.info("")
        for weight in services.learned_weights.find_for_user(user.id):
            logger.info(
                f"  {weight.keyword:<20} -> {table.display_name(weight.category_id):<35} "
                f"w={weight.confidence_weight:<5} n={weight.usage_count}"
            )


def setup_parser(subparsers):
    """Setup learning subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "learning",
        help="Learned keyword weights",
        description="Inspect and maintain per-user learned keyword weights",
    )
    learning_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available learning commands",
        dest="subcommand",
        required=True,
    )

    decay_parser = learning_subparsers.add_parser(
        "decay", help="Decay weights unused for a number of days"
    )
    decay_parser.add_argument(
        "--days", type=int, help="Only decay weights unused for this many days"
    )
    decay_parser.add_argument(
        "--policy", choices=DECAY_POLICIES, help="Override the configured policy"
    )
    decay_parser.set_defaults(func=cmd_decay)

    stats_parser = learning_subparsers.add_parser(
        "stats", help="Show learning stats for a user"
    )
    stats_parser.add_argument("--user", required=True, help="User external id")
    stats_parser.add_argument(
        "-v", "--verbose", action="store_true", help="List every learned weight"
    )
    stats_parser.set_defaults(func=cmd_stats)
