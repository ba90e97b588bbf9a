import sqlite3
import os
import logging
from typing import Optional

from wallet_core.errors import AlreadyRegistered
from wallet_core.events import UserAuthenticated, UserRegistered
from wallet_core.registry import AccountRecord

from .setup_database import setup_database

logger = logging.getLogger(__name__)

DATABASE_FILE = os.getenv("WALLET2FA_DB", "database/wallet_2fa.db")
# sqlite chờ lock tối đa bao lâu khi nhiều writer cùng ghi
LOCK_TIMEOUT = 30


class SqliteAccountStore:
    """
    Account store trên SQLite.

    account_id là PRIMARY KEY: INSERT trùng -> sqlite3.IntegrityError -> AlreadyRegistered.
    Mỗi thao tác mở connection riêng nên gọi từ nhiều thread được.
    """

    def __init__(self, path: str = DATABASE_FILE):
        self.path = path
        setup_database(path)

    def get_db_connection(self):
        """Kết nối đến database"""
        conn = sqlite3.connect(self.path, timeout=LOCK_TIMEOUT)
        conn.row_factory = sqlite3.Row  # Trả về kết quả dạng dictionary
        return conn

    def insert(self, record: AccountRecord) -> None:
        """Thêm account mới; raise AlreadyRegistered nếu account_id đã tồn tại"""
        conn = self.get_db_connection()
        try:
            with conn:
                conn.execute(
                    """INSERT INTO accounts (account_id, username, public_key, otp_seed, created_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (record.account_id, record.username, record.public_key,
                     record.otp_seed, record.created_at)
                )
        except sqlite3.IntegrityError as e:
            raise AlreadyRegistered(record.account_id) from e
        finally:
            conn.close()

    def get(self, account_id: str) -> Optional[AccountRecord]:
        """Lấy AccountRecord theo account_id, None nếu chưa đăng ký"""
        conn = self.get_db_connection()
        try:
            row = conn.execute(
                "SELECT * FROM accounts WHERE account_id = ?", (account_id,)
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        return AccountRecord(
            account_id=row['account_id'],
            username=row['username'],
            public_key=bytes(row['public_key']),
            otp_seed=bytes(row['otp_seed']),
            created_at=row['created_at'],
        )

    def append_event(self, event) -> None:
        """Ghi audit event (UserRegistered / UserAuthenticated)"""
        username = getattr(event, 'username', None)
        success = getattr(event, 'success', None)
        conn = self.get_db_connection()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO auth_events (event, account_id, username, success, at) VALUES (?, ?, ?, ?, ?)",
                    (event.name, event.account_id, username, success, event.at)
                )
        finally:
            conn.close()

    def events(self, account_id: str = None) -> list:
        """Đọc audit trail theo thứ tự ghi"""
        conn = self.get_db_connection()
        try:
            if account_id is None:
                rows = conn.execute("SELECT * FROM auth_events ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM auth_events WHERE account_id = ? ORDER BY id", (account_id,)
                ).fetchall()
        finally:
            conn.close()
        return [_row_to_event(row) for row in rows]

    def __len__(self) -> int:
        conn = self.get_db_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM accounts").fetchone()[0]
        finally:
            conn.close()


def _row_to_event(row):
    if row['event'] == UserRegistered.name:
        return UserRegistered(row['account_id'], row['username'], row['at'])
    return UserAuthenticated(row['account_id'], bool(row['success']), row['at'])
