#!/usr/bin/env python3
"""
Lowercase wallet/pool addresses and emails on stored applications.

Duplicates (two applications that collapse onto the same wallet and pool)
are listed for manual review and left untouched.

Usage:
    python scripts/normalize_address_case.py [--apply]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from educhain.db import mongo
from educhain.maintenance import normalize_application_case
from educhain.observability.logging import configure_logging
from educhain.settings import get_settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--apply", action="store_true", help="write changes (default: dry run)")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(level=settings.log_level)
    client = mongo.create_client(settings)
    try:
        db = mongo.get_database(client, settings)
        report = normalize_application_case(db[mongo.APPLICATIONS], apply=args.apply)
    finally:
        client.close()

    verb = "Updated" if args.apply else "Would update"
    print(f"Total applications: {report.total}")
    print(f"{verb}: {len(report.updated)}")
    print(f"Duplicates: {len(report.duplicates)}")
    print(f"Unchanged: {report.unchanged}")
    for d in report.duplicates:
        print(f"  duplicate {d['id']}: wallet={d['walletAddress']} pool={d['poolAddress']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
