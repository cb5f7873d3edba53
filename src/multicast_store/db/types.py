from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, LargeBinary
from sqlalchemy.types import TypeDecorator

from multicast_store.models.keys import EUI64


class EUI64Type(TypeDecorator):
    """Хранит EUI64 как 8 байт (bytea в PostgreSQL, BLOB в SQLite)."""

    impl = LargeBinary(EUI64.SIZE)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return bytes(EUI64.parse(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return EUI64(value)


class UTCDateTime(TypeDecorator):
    """
    Время всегда в UTC и всегда aware.
    SQLite не хранит часовой пояс, поэтому значение пишется в UTC и при чтении
    помечается как UTC; PostgreSQL (timestamptz) приводится к UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
