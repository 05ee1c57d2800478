"""
Repositories for accounts, portfolio rows, links and saved tool items.

Rows are returned as plain dicts ready for JSON responses. Every per-user
query is scoped by ``user_id``; a row that belongs to someone else reads
the same as a missing one.
"""

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from shared.errors import ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .database import Database
from .tables import background_removal_jobs, color_palettes, links, nylon_fabric_designs, portfolio, users


def row_to_dict(row: Any) -> Dict[str, Any]:
    data = dict(row._mapping)
    created_at = data.get("created_at")
    if isinstance(created_at, datetime):
        data["created_at"] = created_at.isoformat()
    return data


class UserRepository:
    """Accounts. Usernames are unique; password hashes never leave this class except for login."""

    table = users

    def __init__(self, db: Database, metrics: Optional[MetricsCollector] = None):
        self.db = db
        self.metrics = metrics
        self.logger = get_logger("portfolio.persistence.users")
        t = self.table
        self.profile_columns = [t.c.id, t.c.username, t.c.profile_picture, t.c.role, t.c.is_approved]
        self.listing_columns = [t.c.id, t.c.username, t.c.role, t.c.is_approved, t.c.created_at]

    def _record(self, operation: str):
        if self.metrics:
            self.metrics.record_db_operation(self.table.name, operation)

    async def create(self, username: str, password_hash: str, role: str = "user", is_approved: bool = False) -> int:
        """
        Insert an account and return its id.

        Raises:
            ValidationError: the username is taken.
        """
        values = {"username": username, "password_hash": password_hash, "role": role, "is_approved": is_approved}
        try:
            async with self.db.begin() as conn:
                result = await conn.execute(insert(self.table).values(**values))
                user_id = result.inserted_primary_key[0]
        except IntegrityError as e:
            raise ValidationError("Username already exists") from e
        self._record("insert")
        return user_id

    async def get_credentials(self, username: str) -> Optional[Dict[str, Any]]:
        """Row with ``password_hash`` for login, or None."""
        t = self.table
        async with self.db.begin() as conn:
            row = (await conn.execute(select(t).where(t.c.username == username))).first()
        self._record("select")
        return row_to_dict(row) if row is not None else None

    async def get_profile(self, user_id: int) -> Optional[Dict[str, Any]]:
        t = self.table
        async with self.db.begin() as conn:
            row = (await conn.execute(select(*self.profile_columns).where(t.c.id == user_id))).first()
        self._record("select")
        return row_to_dict(row) if row is not None else None

    async def update_profile(self, user_id: int, username: str, password_hash: Optional[str] = None) -> bool:
        """
        Rename the account and optionally replace its password.

        Raises:
            ValidationError: the new username is taken.
        """
        t = self.table
        values: Dict[str, Any] = {"username": username}
        if password_hash is not None:
            values["password_hash"] = password_hash
        try:
            async with self.db.begin() as conn:
                result = await conn.execute(update(t).where(t.c.id == user_id).values(**values))
        except IntegrityError as e:
            raise ValidationError("Username already exists") from e
        self._record("update")
        return result.rowcount > 0

    async def list_all(self) -> List[Dict[str, Any]]:
        t = self.table
        query = select(*self.listing_columns).order_by(t.c.created_at.desc(), t.c.id.desc())
        async with self.db.begin() as conn:
            rows = [row_to_dict(row) for row in await conn.execute(query)]
        self._record("select")
        return rows

    async def approve(self, user_id: int) -> bool:
        t = self.table
        async with self.db.begin() as conn:
            result = await conn.execute(update(t).where(t.c.id == user_id).values(is_approved=True))
        self._record("update")
        return result.rowcount > 0

    async def delete(self, user_id: int) -> bool:
        t = self.table
        async with self.db.begin() as conn:
            result = await conn.execute(delete(t).where(t.c.id == user_id))
        self._record("delete")
        return result.rowcount > 0

    async def ensure_admin(self, username: str, password_hash: str) -> int:
        """Create *username* as an approved admin, or promote and re-password an existing account."""
        t = self.table
        async with self.db.begin() as conn:
            existing = (await conn.execute(select(t.c.id).where(t.c.username == username))).first()
            if existing is not None:
                user_id = existing.id
                await conn.execute(
                    update(t)
                    .where(t.c.id == user_id)
                    .values(password_hash=password_hash, role="admin", is_approved=True)
                )
            else:
                result = await conn.execute(
                    insert(t).values(username=username, password_hash=password_hash, role="admin", is_approved=True)
                )
                user_id = result.inserted_primary_key[0]
        self._record("upsert")
        self.logger.info("Admin account ensured", user_id=user_id, username=username, promoted=existing is not None)
        return user_id


class PortfolioRepository:
    """Public portfolio grid rows."""

    table = portfolio

    def __init__(self, db: Database, metrics: Optional[MetricsCollector] = None):
        self.db = db
        self.metrics = metrics
        self.logger = get_logger("portfolio.persistence.portfolio")

    def _record(self, operation: str):
        if self.metrics:
            self.metrics.record_db_operation(self.table.name, operation)

    async def list_items(self) -> List[Dict[str, Any]]:
        async with self.db.begin() as conn:
            result = await conn.execute(select(self.table).order_by(self.table.c.id))
            rows = [row_to_dict(row) for row in result]
        self._record("select")
        return rows

    async def replace_all(self, items: Iterable[Mapping[str, Any]]) -> int:
        """Delete every row and insert *items* in one transaction."""
        values = [dict(item) for item in items]
        async with self.db.begin() as conn:
            await conn.execute(delete(self.table))
            if values:
                await conn.execute(insert(self.table), values)
        self._record("replace")
        self.logger.info("Portfolio replaced", count=len(values))
        return len(values)


class LinkRepository:
    """Per-user saved links; tags are stored as JSON text."""

    table = links

    def __init__(self, db: Database, metrics: Optional[MetricsCollector] = None):
        self.db = db
        self.metrics = metrics

    def _record(self, operation: str):
        if self.metrics:
            self.metrics.record_db_operation(self.table.name, operation)

    @staticmethod
    def _decode(row: Any) -> Dict[str, Any]:
        data = row_to_dict(row)
        data["tags"] = json.loads(data.get("tags") or "[]")
        return data

    async def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        t = self.table
        query = select(t).where(t.c.user_id == user_id).order_by(t.c.created_at.desc(), t.c.id.desc())
        async with self.db.begin() as conn:
            result = await conn.execute(query)
            rows = [self._decode(row) for row in result]
        self._record("select")
        return rows

    async def create(
        self,
        user_id: int,
        title: str,
        url: str,
        description: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        image_url: Optional[str] = None,
    ) -> int:
        values = {
            "user_id": user_id,
            "title": title,
            "url": url,
            "description": description or "",
            "tags": json.dumps(list(tags or [])),
            "image_url": image_url or "",
        }
        async with self.db.begin() as conn:
            result = await conn.execute(insert(self.table).values(**values))
            link_id = result.inserted_primary_key[0]
        self._record("insert")
        return link_id

    async def update(
        self,
        link_id: int,
        user_id: int,
        title: Optional[str],
        url: Optional[str],
        description: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        image_url: Optional[str] = None,
    ) -> bool:
        t = self.table
        query = (
            update(t)
            .where(t.c.id == link_id, t.c.user_id == user_id)
            .values(
                title=title,
                url=url,
                description=description or "",
                tags=json.dumps(list(tags or [])),
                image_url=image_url or "",
            )
        )
        async with self.db.begin() as conn:
            result = await conn.execute(query)
        self._record("update")
        return result.rowcount > 0

    async def delete(self, link_id: int, user_id: int) -> bool:
        t = self.table
        async with self.db.begin() as conn:
            result = await conn.execute(delete(t).where(t.c.id == link_id, t.c.user_id == user_id))
        self._record("delete")
        return result.rowcount > 0


class ToolItemRepository:
    """List, create and delete for one per-user tool table."""

    def __init__(self, db: Database, table: Table, metrics: Optional[MetricsCollector] = None):
        self.db = db
        self.table = table
        self.metrics = metrics
        self.columns = [c for c in table.c if c.name != "user_id"]

    def _record(self, operation: str):
        if self.metrics:
            self.metrics.record_db_operation(self.table.name, operation)

    async def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        t = self.table
        query = (
            select(*self.columns)
            .where(t.c.user_id == user_id)
            .order_by(t.c.created_at.desc(), t.c.id.desc())
        )
        async with self.db.begin() as conn:
            result = await conn.execute(query)
            rows = [row_to_dict(row) for row in result]
        self._record("select")
        return rows

    async def create(self, user_id: int, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it as stored."""
        t = self.table
        async with self.db.begin() as conn:
            result = await conn.execute(insert(t).values(user_id=user_id, **values))
            item_id = result.inserted_primary_key[0]
            row = (await conn.execute(select(*self.columns).where(t.c.id == item_id))).one()
        self._record("insert")
        return row_to_dict(row)

    async def delete(self, item_id: int, user_id: int) -> bool:
        t = self.table
        async with self.db.begin() as conn:
            result = await conn.execute(delete(t).where(t.c.id == item_id, t.c.user_id == user_id))
        self._record("delete")
        return result.rowcount > 0


def palette_repository(db: Database, metrics: Optional[MetricsCollector] = None) -> ToolItemRepository:
    return ToolItemRepository(db, color_palettes, metrics)


def background_removal_repository(db: Database, metrics: Optional[MetricsCollector] = None) -> ToolItemRepository:
    return ToolItemRepository(db, background_removal_jobs, metrics)


def nylon_fabric_repository(db: Database, metrics: Optional[MetricsCollector] = None) -> ToolItemRepository:
    return ToolItemRepository(db, nylon_fabric_designs, metrics)
