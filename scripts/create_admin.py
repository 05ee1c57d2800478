#!/usr/bin/env python3
"""
Create an approved admin account, or promote an existing one.

New registrations wait for an admin's approval, so the first admin has to
be created out of band. Re-running the script resets that account's
password.
"""

import argparse
import asyncio
import getpass
from typing import Optional, Sequence
import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from service_portfolio.app.auth import PasswordHasher  # noqa: E402
from service_portfolio.app.persistence.database import Database  # noqa: E402
from service_portfolio.app.persistence.repositories import UserRepository  # noqa: E402
from shared.config import get_config  # noqa: E402
from shared.errors import ValidationError  # noqa: E402
from shared.logging import configure_logging  # noqa: E402


async def create_admin(username: str, password: str, database_url: str, rounds: int) -> int:
    """Hash *password* and upsert *username* as an approved admin."""
    password_hash = PasswordHasher(rounds).hash(password)
    db = Database(database_url)
    await db.start()
    try:
        return await UserRepository(db).ensure_admin(username, password_hash)
    finally:
        await db.stop()


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote an admin account.")
    parser.add_argument("username", help="Account to create or promote")
    parser.add_argument("--password", default=None, help="Password (prompted for when omitted)")
    parser.add_argument("--database-url", default=None, help="Override the configured database URL")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    config = get_config("portfolio-admin", 0)
    configure_logging("portfolio-admin", config.log_level, json_logs=config.log_json)

    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    if not password:
        print("[admin] a password is required", file=sys.stderr)
        return 1

    try:
        user_id = asyncio.run(create_admin(
            args.username,
            password,
            args.database_url or config.resolved_database_url(),
            config.password_hash_rounds,
        ))
    except ValidationError as exc:
        print(f"[admin] {exc.message}", file=sys.stderr)
        return 1

    print(f"[admin] {args.username} (id {user_id}) is an approved admin")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
