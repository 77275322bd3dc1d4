"""
Nickname history storage.

SQLAlchemy Core over a synchronous engine. Production uses Postgres through
psycopg; tests use in-memory SQLite.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from juicebot.errors import StorageError

logger = logging.getLogger(__name__)

metadata = MetaData()

names = Table(
    'names',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('guild_id', Text, nullable=False),
    Column('user_id', Text, nullable=False),
    Column('new_display_name', Text, nullable=False),
    Column('changed_at', DateTime(timezone=True), nullable=False, server_default=func.now()),
)


def normalize_database_url(url: str) -> str:
    """Point plain Postgres URIs at the psycopg (v3) driver."""
    for prefix in ('postgres://', 'postgresql://'):
        if url.startswith(prefix):
            return 'postgresql+psycopg://' + url[len(prefix):]
    return url


@dataclass(frozen=True)
class NameHistoryEntry:
    id: int
    guild_id: str
    user_id: str
    new_display_name: str
    changed_at: Optional[datetime]

    @property
    def changed_at_text(self) -> str:
        if self.changed_at is None:
            return '-'
        return self.changed_at.strftime('%b %d, %Y %H:%M')


class NameHistoryStore:
    """Records nickname changes per guild and user."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str) -> 'NameHistoryStore':
        return cls(create_engine(normalize_database_url(url), pool_pre_ping=True))

    def init(self) -> None:
        """Create the table if it does not exist."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f'Failed to create name history table: {e}') from e

    def add_entry(self, guild_id: str, user_id: str, new_display_name: str) -> None:
        stmt = insert(names).values(
            guild_id=guild_id,
            user_id=user_id,
            new_display_name=new_display_name or '',
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f'Failed to write name change to the DB: {e}') from e

    def get_history(self, guild_id: str, user_id: str) -> List[NameHistoryEntry]:
        """Return a user's nickname history in a guild, newest first."""
        stmt = (
            select(names)
            .where(names.c.guild_id == guild_id, names.c.user_id == user_id)
            .order_by(names.c.changed_at.desc(), names.c.id.desc())
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StorageError(f'Failed to query name history: {e}') from e

        return [
            NameHistoryEntry(
                id=row.id,
                guild_id=row.guild_id,
                user_id=row.user_id,
                new_display_name=row.new_display_name,
                changed_at=row.changed_at,
            )
            for row in rows
        ]

    def close(self) -> None:
        self.engine.dispose()
