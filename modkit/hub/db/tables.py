"""SQLAlchemy ORM models for the event log.

Single source of truth for the database schema.  Alembic reads
``Base.metadata`` to autogenerate migration scripts.

The log is one append-only table.  Columns hold the wire strings of the
event: ``kind`` and ``device`` are enum values, ``data`` is the externally
tagged bundle JSON.  Absent ``device`` / ``data`` are stored as the literal
string ``"None"`` so rows written by older deployments stay readable.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

from sqlalchemy import Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NONE_MARKER = "None"
"""Column value standing in for an absent device or data bundle."""


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class EventRow(Base):
    __tablename__ = "Events"
    __table_args__ = (Index("ix_events_kind_timestamp", "kind", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(Integer, nullable=False)
    device: Mapped[str] = mapped_column(Text, nullable=False, default=NONE_MARKER)
    data: Mapped[str] = mapped_column(Text, nullable=False, default=NONE_MARKER)
