from src.database.base import (
    Base,
    JSONType,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    enum_type,
    utcnow,
)
from src.database.engine import async_session, engine
from src.database.session import get_db

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "engine",
    "enum_type",
    "get_db",
    "utcnow",
]
