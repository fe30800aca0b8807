"""Database module for the link-in-bio service."""
from biolink.db.base import engine, get_engine, get_session, DatabaseHealthCheck
from biolink.db.session import get_db, db_transaction

__all__ = [
    "engine",
    "get_engine",
    "get_session",
    "DatabaseHealthCheck",
    "get_db",
    "db_transaction",
]
