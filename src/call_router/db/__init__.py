"""Database module for the call router.

Provides:
- SQLAlchemy ORM models for agent configs and call records
- Async session management with dependency injection
- Repositories and the SQL-backed store implementations
"""
from call_router.db.base import Base, TimestampMixin, UUIDMixin, generate_uuid
from call_router.db.session import (
    close_db,
    create_test_engine,
    get_db,
    get_db_context,
    get_engine,
    get_session_factory,
    get_test_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    # Base and mixins
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "generate_uuid",
    # Session management
    "get_engine",
    "get_session_factory",
    "get_db",
    "get_db_context",
    "session_scope",
    "init_db",
    "close_db",
    # Testing
    "create_test_engine",
    "get_test_session_factory",
]
