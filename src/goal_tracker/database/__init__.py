"""Database module for the goal tracker.

This module provides:
- SQLAlchemy async database connection
- The user account model
- User queries for the authentication flows
"""

from goal_tracker.database.connection import (
    close_db,
    create_tables,
    get_db,
    get_db_session,
    init_db,
)
from goal_tracker.database.models import Base, User
from goal_tracker.database.users import UserRepository

__all__ = [
    # Connection
    "get_db",
    "get_db_session",
    "init_db",
    "close_db",
    "create_tables",
    # Models
    "Base",
    "User",
    "UserRepository",
]
