#!/usr/bin/env python3
"""
Load the portfolio spreadsheet export into the configured database.

Uses DATABASE_URL when set, otherwise the SQLite file from SQLITE_PATH.
Existing portfolio rows are replaced.
"""

import argparse
import asyncio
from pathlib import Path
from typing import Optional, Sequence
import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from portfolio_tools.projects import CSVFormatError  # noqa: E402
from service_portfolio.app.persistence.database import Database  # noqa: E402
from service_portfolio.app.persistence.seed import seed_portfolio  # noqa: E402
from shared.config import get_config  # noqa: E402
from shared.logging import configure_logging  # noqa: E402


async def seed(csv_path: Path, database_url: str) -> int:
    """Create the tables if needed and replace the portfolio rows."""
    csv_text = csv_path.read_text(encoding="utf-8-sig")
    db = Database(database_url)
    await db.start()
    try:
        return await seed_portfolio(db, csv_text)
    finally:
        await db.stop()


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the portfolio table from a CSV export.")
    parser.add_argument("csv_path", type=Path, help="Path to the portfolio CSV")
    parser.add_argument("--database-url", default=None, help="Override the configured database URL")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    config = get_config("portfolio-seed", 0)
    configure_logging("portfolio-seed", config.log_level, json_logs=config.log_json)

    try:
        imported = asyncio.run(seed(args.csv_path, args.database_url or config.resolved_database_url()))
    except FileNotFoundError:
        print(f"[seed] CSV not found: {args.csv_path}", file=sys.stderr)
        return 1
    except CSVFormatError as exc:
        print(f"[seed] invalid CSV: {exc}", file=sys.stderr)
        return 1

    print(f"[seed] imported {imported} portfolio items")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
