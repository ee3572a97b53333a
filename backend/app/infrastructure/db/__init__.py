"""
Database Infrastructure Package for the AI Business Assistant

Exports database utilities and session dependencies.
"""

from app.infrastructure.db.database import (
    DatabaseManager,
    get_db_manager,
    get_session,
    get_session_context,
    init_db,
    close_db,
)

from app.infrastructure.db.dependencies import SessionDep


__all__ = [
    # Database management
    "DatabaseManager",
    "get_db_manager",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Dependencies
    "SessionDep",
]
