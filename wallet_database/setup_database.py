import sqlite3
import os
import logging

logger = logging.getLogger(__name__)

SCHEMA = '''
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    public_key BLOB NOT NULL,
    otp_seed BLOB NOT NULL,
    created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS auth_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event TEXT NOT NULL,
    account_id TEXT NOT NULL,
    username TEXT,
    success BOOLEAN,
    at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_auth_events_account ON auth_events (account_id);
'''


def setup_database(path: str):
    """Tạo bảng accounts (account_id là PRIMARY KEY) và bảng audit auth_events"""

    # Đảm bảo thư mục tồn tại
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()
    logger.info("Database setup completed: %s", path)


if __name__ == "__main__":
    from .db_manager import DATABASE_FILE
    setup_database(DATABASE_FILE)
