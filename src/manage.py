"""Minting database management CLI.

Provides commands to create and drop the minting database schema.
Reuses the setup_db/drop_db utilities in minting.utils.db.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    """Create the database schema for the minting domain."""
    from minting.domain import minting
    from minting.utils.db import setup_db

    print("Initializing minting domain...")
    minting.init()
    print("Creating minting database schema...")
    setup_db(minting)
    print("  minting schema ready.")

    print("Done.")


def drop_databases():
    """Drop the database schema for the minting domain."""
    from minting.domain import minting
    from minting.utils.db import drop_db

    print("Initializing minting domain...")
    minting.init()
    print("Dropping minting database schema...")
    drop_db(minting)
    print("  minting schema dropped.")

    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Minting database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
