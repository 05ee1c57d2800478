"""
Table definitions for the portfolio service.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, String, Table, Text

metadata = MetaData()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(32), nullable=False, default="user"),
    Column("is_approved", Boolean, nullable=False, default=False),
    Column("profile_picture", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

portfolio = Table(
    "portfolio",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("title", String(255), nullable=False),
    Column("type", String(32), nullable=False),
    Column("coverImage", Text, nullable=False),
    Column("sourceUrl", Text),
    Column("date", String(32)),
    Column("location", String(255)),
    Column("gpsCoords", String(64)),
    Column("feat", String(255)),
    Column("description", Text),
    Column("easterEgg", Text),
)

links = Table(
    "links",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("url", Text, nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("tags", Text, nullable=False, default="[]"),
    Column("image_url", Text, nullable=False, default=""),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

color_palettes = Table(
    "color_palettes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("file_name", String(255)),
    Column("image_data_url", Text),
    Column("palette_json", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

background_removal_jobs = Table(
    "background_removal_jobs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("file_name", String(255)),
    Column("source_image_data_url", Text),
    Column("result_image_data_url", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

nylon_fabric_designs = Table(
    "nylon_fabric_designs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("project_name", String(255)),
    Column("description", Text),
    Column("guide_text", Text),
    Column("visuals_json", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)
