"""Database package: async SQLAlchemy engine and session factory builders, Base."""
from vendor_mdm.db.base import (
    Base,
    create_engine_for,
    create_session_factory,
    get_db,
)

__all__ = [
    "Base",
    "create_engine_for",
    "create_session_factory",
    "get_db",
]
