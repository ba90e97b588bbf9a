"""
DATABASE PACKAGE

SQLite account store cho wallet_core: bảng accounts + bảng audit auth_events.
"""

from .db_manager import DATABASE_FILE, SqliteAccountStore
from .setup_database import setup_database

__all__ = ['DATABASE_FILE', 'SqliteAccountStore', 'setup_database']
