"""
Secret store model.

One row per secret key. Values are pgcrypto ciphertext (BYTEA) on PostgreSQL
and plain text on SQLite; encryption itself lives in
``utils.encryption_utils``.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import BYTEA
from sqlalchemy.types import TypeDecorator

from .db_config import Base


def utc_now():
    return datetime.now(UTC)


class SecretValue(TypeDecorator):
    """BYTEA on PostgreSQL, TEXT elsewhere."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(BYTEA())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if dialect.name != "postgresql" and isinstance(value, bytes):
            return value.decode("utf-8")
        return value


class SecretEntry(Base):
    """A single namespaced secret."""

    __tablename__ = "secret_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    key = Column(String(255), nullable=False)
    secret_value = Column(SecretValue, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (Index("ix_secret_entries_key", "key", unique=True),)
