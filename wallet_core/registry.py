"""
registry.py — Seed & Key Binding: AccountRecord + store trong bộ nhớ.

- Mỗi account_id có đúng một AccountRecord; đăng ký là one-shot.
- public_key được kiểm tra độ dài (65 bytes) lúc tạo, sau đó chỉ so sánh bằng.
- Store được truyền tường minh vào TwoFactorAuth (không có singleton toàn cục),
  test có thể tạo store riêng cho từng kịch bản.

Store nào cũng phải có: insert(record), get(account_id), append_event(event), events(account_id).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging
import threading

from cryptography.hazmat.primitives.asymmetric import ec

from .errors import (
    AlreadyRegistered,
    InvalidAccountId,
    InvalidOtpSeed,
    InvalidOtpSeedLength,
    InvalidPublicKey,
    InvalidPublicKeyLength,
    InvalidUsername,
)
from .otp_core import OTP_SEED_BYTES, PUBLIC_KEY_BYTES

logger = logging.getLogger(__name__)

BYTES_LIKE = (bytes, bytearray, memoryview)


@dataclass(frozen=True)
class AccountRecord:
    account_id: str
    username: str
    public_key: bytes
    otp_seed: bytes = field(repr=False)
    created_at: float = 0.0


def validate_registration(
    account_id: str,
    username: str,
    public_key: bytes,
    otp_seed: bytes,
    strict_public_key: bool = False,
) -> None:
    """
    Kiểm tra input đăng ký, raise lỗi đầu tiên gặp phải.

    Thứ tự: account_id -> username -> kiểu + độ dài public key -> (strict) điểm EC
    -> kiểu + độ dài seed. public_key / otp_seed phải là bytes-like: bytes(65) từ một
    int sẽ cho key toàn số 0, nên int / str / None bị từ chối trước khi convert.
    Không chạm vào store; caller chỉ insert khi hàm này không raise.
    """
    if not isinstance(account_id, str) or not account_id.strip():
        raise InvalidAccountId("Account id must be a non-empty string")
    if not isinstance(username, str) or not username.strip():
        raise InvalidUsername("Username must not be empty", account_id)
    if not isinstance(public_key, BYTES_LIKE):
        raise InvalidPublicKey("Public key must be bytes", account_id)
    if len(public_key) != PUBLIC_KEY_BYTES:
        raise InvalidPublicKeyLength(len(public_key), account_id)
    if strict_public_key:
        try:
            ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(public_key))
        except ValueError as e:
            raise InvalidPublicKey("Public key is not a valid secp256k1 point", account_id) from e
    if not isinstance(otp_seed, BYTES_LIKE):
        raise InvalidOtpSeed("OTP seed must be bytes", account_id)
    if len(otp_seed) != OTP_SEED_BYTES:
        raise InvalidOtpSeedLength(len(otp_seed), account_id)


class MemoryAccountStore:
    """
    Keyed store trong bộ nhớ (dict), an toàn khi nhiều thread cùng gọi.

    insert() kiểm tra tồn tại + ghi dưới cùng một lock, nên hai lần đăng ký
    đồng thời cho cùng account_id chỉ có một lần thành công.
    """

    def __init__(self):
        self._records: Dict[str, AccountRecord] = {}
        self._events: List = []
        self._lock = threading.Lock()

    def insert(self, record: AccountRecord) -> None:
        with self._lock:
            if record.account_id in self._records:
                raise AlreadyRegistered(record.account_id)
            self._records[record.account_id] = record

    def get(self, account_id: str) -> Optional[AccountRecord]:
        return self._records.get(account_id)

    def append_event(self, event) -> None:
        with self._lock:
            self._events.append(event)

    def events(self, account_id: str = None) -> list:
        with self._lock:
            snapshot = list(self._events)
        if account_id is None:
            return snapshot
        return [e for e in snapshot if e.account_id == account_id]

    def __len__(self) -> int:
        return len(self._records)
