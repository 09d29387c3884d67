"""SQLAlchemy table definitions."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, MetaData, String, Table

metadata = MetaData()

# One row per configuration type; the primary key enforces uniqueness.
system_configuration = Table(
    "system_configuration",
    metadata,
    Column("config_type", String(32), primary_key=True),
    Column("document", JSON, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=True),
)
