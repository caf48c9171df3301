"""
Cron-style purge of expired CSRF tokens.

The running service sweeps on its own timer; this script is for deployments
that prefer an external scheduler, or for a one-off cleanup after downtime.
"""

from __future__ import annotations

import argparse
import sys

from tasks_api.core.logging import configure_logging
from tasks_api.core.settings import settings
from tasks_api.db.session import SessionLocal, create_tables
from tasks_api.services.csrf import load_csrf_config
from tasks_api.services.csrf_store import TokenStore, TokenStoreError
from tasks_api.services.csrf_sweeper import ExpirySweeper


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete expired CSRF tokens.")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create the token table first if it does not exist.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(settings)

    if args.create_tables:
        create_tables()

    sweeper = ExpirySweeper(TokenStore(SessionLocal), load_csrf_config(settings))
    try:
        removed = sweeper.sweep_once()
    except TokenStoreError as exc:
        print(f"Failed to purge expired tokens: {exc}", file=sys.stderr)
        return 1

    print(f"Removed {removed} expired CSRF tokens")
    return 0


if __name__ == "__main__":
    sys.exit(main())
