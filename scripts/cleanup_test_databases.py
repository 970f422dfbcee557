#!/usr/bin/env python3
"""
Utility script to clean up test databases left behind by interrupted runs.

Test databases are found through the test identity stored as their comment.

Usage:
    python scripts/cleanup_test_databases.py [--pattern '%test_users%'] [--dry-run]
"""

import argparse
import asyncio
import logging
import sys

from pg_test_template.config.config_manager import ConfigManager
from pg_test_template.database.connection_manager import AdminConnectionManager
from pg_test_template.database.diagnostics import drop_test_databases, find_test_databases
from pg_test_template.exceptions import TestDatabaseError


async def cleanup_test_databases(pattern: str = "%", dry_run: bool = False) -> int:
    """Drop all test databases whose identity matches the pattern."""
    admin = AdminConnectionManager(ConfigManager())

    print(f"🧹 Looking for test databases matching '{pattern}'...")
    async with admin.session():
        records = await find_test_databases(admin, pattern)

        if not records:
            print("  No test databases found.")
            return 0

        for record in records:
            prefix = "[DRY RUN] Would drop" if dry_run else "Dropping"
            print(f"  {prefix} {record.name} ({record.identity})")

        if dry_run:
            print("\n  This was a dry run - no databases were actually dropped.")
            print("  Run without --dry-run to actually clean up.")
            return 0

        dropped = await drop_test_databases(admin, records)

    print(f"\n✅ Cleanup complete! Databases dropped: {len(dropped)}")
    return len(dropped)


def main():
    parser = argparse.ArgumentParser(
        description="Drop test databases left behind by failed or interrupted test runs"
    )
    parser.add_argument(
        "--pattern",
        default="%",
        help="ILIKE pattern matched against the test identity (default: all test databases)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be dropped without actually dropping anything"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every statement issued"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        asyncio.run(cleanup_test_databases(pattern=args.pattern, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\n\n⚠️  Cleanup interrupted by user")
        sys.exit(1)
    except TestDatabaseError as e:
        print(f"\n❌ Cleanup failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
