#!/usr/bin/env python3
"""Reset script for Centavo.

Deletes the data directory (database and logs), recreates the schema and
seeds the bundled categories. Only runs when enable_reset is true.
"""

import json
import shutil
import sys

from cli.migrate import apply_pending
from config import get_config_path, get_seed_dir, load_config
from logger import setup_logging
from services.base import Services


def reset():
    """Reset the application state."""
    print("Centavo Reset Script")
    print("=" * 50)

    config = load_config()

    if not config.enable_reset:
        print("\nReset is disabled in configuration (enable_reset=false).")
        print(f"To enable reset, set enable_reset=true in {get_config_path()}")
        sys.exit(1)

    print(f"\nData directory: {config.base_dir}")
    print(f"Database: {config.db_path}")
    print(f"Logs: {config.log_dir}")

    response = input("\nThis will delete ALL expenses and learned weights. Continue? (yes/no): ")
    if response.lower() != "yes":
        print("Reset cancelled.")
        sys.exit(0)

    if config.base_dir.exists():
        print(f"\nDeleting {config.base_dir}...")
        shutil.rmtree(config.base_dir)
        print("✓ Data directory deleted")
    else:
        print(f"\n✓ Data directory does not exist: {config.base_dir}")

    setup_logging(config)
    services = Services(config)

    print("\nRunning migrations...")
    applied = apply_pending(services.db_manager)
    print(f"✓ Applied {len(applied)} migration(s)")

    print("\nSeeding categories...")
    with open(get_seed_dir() / "categories.json", "r", encoding="utf-8") as f:
        created, _ = services.categories.seed(json.load(f))
    print(f"✓ Created {created} categories")

    print("\n" + "=" * 50)
    print("Reset complete! Database has been recreated.")
    print(f"Database location: {config.db_path}")


if __name__ == "__main__":
    reset()
