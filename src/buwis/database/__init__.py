"""Database layer for buwis."""

from buwis.database.base import Database
from buwis.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
