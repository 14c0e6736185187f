#!/usr/bin/env python3
"""
Remove user records that are missing walletAddress, email or role.

Usage:
    python scripts/clean_invalid_users.py [--apply]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from educhain.db import mongo
from educhain.maintenance import clean_invalid_users
from educhain.observability.logging import configure_logging
from educhain.repositories.users_repo import UsersRepo
from educhain.settings import get_settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--apply", action="store_true", help="delete the records (default: dry run)")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(level=settings.log_level)
    client = mongo.create_client(settings)
    try:
        db = mongo.get_database(client, settings)
        invalid = clean_invalid_users(UsersRepo(db[mongo.USERS]), apply=args.apply)
    finally:
        client.close()

    print(f"Invalid users: {len(invalid)}")
    for u in invalid:
        print(f"  {u.get('_id')}: wallet={u.get('walletAddress')} email={u.get('email')} role={u.get('role')}")
    if invalid and not args.apply:
        print("Dry run; pass --apply to delete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
