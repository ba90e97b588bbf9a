"""
auth.py — Authentication Orchestrator.

TwoFactorAuth gộp registry + time window + derivation + verifier:

    register()      -> tạo AccountRecord, phát UserRegistered
    get_account()   -> AccountRecord | None (bao gồm cả otp_seed)
    generate_otp()  -> OTP của step hiện tại (không side-effect)
    is_valid()      -> bool, không bao giờ raise
    authenticate()  -> bool, raise NotRegistered; luôn phát UserAuthenticated

`now` mặc định lấy từ self.clock (đồng hồ server). Transport layer
(Flask / CLI) KHÔNG được chuyển thời gian do client gửi lên vào đây.

Chống replay: mặc định không có (một mã dùng lại được nhiều lần trong 60s).
Truyền replay_guard (ví dụ UsedCodeGuard) để bật chế độ one-time-use.
"""

from typing import Callable, Optional, Union
import logging
import threading
import time

from .errors import NotRegistered
from .events import EventBus, UserAuthenticated, UserRegistered
from .otp_core import (
    LOOK_BACK_STEPS,
    current_step,
    derive_otp,
    find_matching_step,
    keys_equal,
    parse_otp,
)
from .registry import AccountRecord, validate_registration

logger = logging.getLogger(__name__)


class UsedCodeGuard:
    """
    Replay guard trong bộ nhớ: mỗi (account_id, step, otp) chỉ được consume một lần.

    Entry cũ hơn cửa sổ look-back được dọn khi có lần consume mới.
    """

    def __init__(self):
        self._used = set()
        self._lock = threading.Lock()

    def consume(self, account_id: str, step: int, otp: int) -> bool:
        """True nếu mã chưa dùng (và đánh dấu là đã dùng), False nếu là replay."""
        key = (account_id, step, otp)
        with self._lock:
            self._used = {k for k in self._used if k[1] >= step - LOOK_BACK_STEPS}
            if key in self._used:
                return False
            self._used.add(key)
            return True

    def __len__(self) -> int:
        return len(self._used)


class TwoFactorAuth:
    def __init__(
        self,
        store,
        clock: Callable[[], float] = time.time,
        replay_guard=None,
        strict_public_key: bool = False,
        bus: EventBus = None,
    ):
        self.store = store
        self.clock = clock
        self.replay_guard = replay_guard
        self.strict_public_key = strict_public_key
        self.bus = bus or EventBus()

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def _emit(self, event) -> None:
        self.store.append_event(event)
        self.bus.publish(event)

    # --- Seed & Key Binding ------------------------------------------------
    def register(self, account_id: str, username: str, public_key: bytes, otp_seed: bytes) -> AccountRecord:
        """
        Đăng ký tài khoản mới.

        Raises:
            InvalidAccountId, InvalidUsername, InvalidPublicKeyLength,
            InvalidPublicKey, InvalidOtpSeed, InvalidOtpSeedLength, AlreadyRegistered
        """
        validate_registration(account_id, username, public_key, otp_seed, self.strict_public_key)
        public_key = bytes(public_key)
        otp_seed = bytes(otp_seed)

        record = AccountRecord(
            account_id=account_id,
            username=username,
            public_key=public_key,
            otp_seed=otp_seed,
            created_at=self.clock(),
        )
        self.store.insert(record)
        logger.info("Registered account %s (username=%s)", account_id, username)
        self._emit(UserRegistered(account_id, username, record.created_at))
        return record

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        return self.store.get(account_id)

    def _require(self, account_id: str) -> AccountRecord:
        record = self.store.get(account_id)
        if record is None:
            raise NotRegistered(account_id)
        return record

    # --- OTP ---------------------------------------------------------------
    def generate_otp(self, account_id: str, now: float = None) -> int:
        """OTP của step hiện tại; gọi lại trong cùng window cho cùng kết quả."""
        record = self._require(account_id)
        return derive_otp(record.otp_seed, record.public_key, current_step(self._now(now)))

    def _match(self, record: Optional[AccountRecord], public_key, otp, now: float) -> Optional[int]:
        if record is None:
            return None
        try:
            if not keys_equal(record.public_key, public_key):
                return None
            code = parse_otp(otp)
        except (TypeError, ValueError):
            return None
        return find_matching_step(record.otp_seed, record.public_key, code, now)

    def is_valid(self, account_id: str, public_key: bytes, otp: Union[int, str], now: float = None) -> bool:
        """
        Kiểm tra OTP cho tài khoản của chính caller.

        False nếu: chưa đăng ký, public key khác (dù chỉ 1 byte), hoặc OTP
        không khớp step hiện tại lẫn step trước đó. Không bao giờ raise.
        """
        try:
            now = self._now(now)
            return self._match(self.store.get(account_id), public_key, otp, now) is not None
        except (TypeError, ValueError):
            return False

    # --- Orchestrator ------------------------------------------------------
    def authenticate(self, account_id: str, public_key: bytes, otp: Union[int, str], now: float = None) -> bool:
        """
        Xác thực user; sai OTP là một lần gọi thành công trả về False.

        Raises:
            NotRegistered: nếu account_id chưa đăng ký
        """
        record = self._require(account_id)
        now = self._now(now)
        step = self._match(record, public_key, otp, now)
        success = step is not None
        if success and self.replay_guard is not None:
            success = self.replay_guard.consume(account_id, step, parse_otp(otp))
            if not success:
                logger.warning("Replayed OTP rejected for %s (step=%s)", account_id, step)

        logger.info("Authentication for %s: %s", account_id, "success" if success else "failure")
        self._emit(UserAuthenticated(account_id, success, now))
        return success
