"""
wallet_core package
===================

Xác thực hai lớp gắn với ví: user đăng ký (username, public key, OTP seed)
theo account_id (địa chỉ ví), sau đó chứng minh sở hữu bằng mã OTP 6 chữ số
đổi mỗi 30 giây.

──────────────────────────────────────────────
Giải thuật cốt lõi
──────────────────────────────────────────────
- step = floor(now / 30)
- otp  = int_be(HMAC-SHA256(key=seed, msg=seed || public_key || uint64_be(step))) mod 10^6
- Verifier chấp nhận step hiện tại và step ngay trước (look-back 1), không look-ahead.
- public_key phải khớp từng byte với key đã đăng ký.

──────────────────────────────────────────────
Ví dụ sử dụng nhanh
──────────────────────────────────────────────
>>> from wallet_core import MemoryAccountStore, TwoFactorAuth, format_otp
>>> auth = TwoFactorAuth(MemoryAccountStore())
>>> auth.register("0xabc", "alice", public_key, otp_seed)
>>> code = auth.generate_otp("0xabc")
>>> print("Mã OTP:", format_otp(code))
>>> auth.authenticate("0xabc", public_key, code)
True
"""
from .auth import TwoFactorAuth, UsedCodeGuard
from .errors import (
    AlreadyRegistered,
    InvalidAccountId,
    InvalidOtpSeed,
    InvalidOtpSeedLength,
    InvalidPublicKey,
    InvalidPublicKeyLength,
    InvalidUsername,
    NotRegistered,
    RegistrationError,
    TwoFactorError,
)
from .events import EventBus, UserAuthenticated, UserRegistered
from .otp_core import (
    WINDOW_SECONDS,
    OTP_DIGITS,
    PUBLIC_KEY_BYTES,
    OTP_SEED_BYTES,
    current_step,
    remaining_seconds,
    derive_otp,
    format_otp,
    parse_otp,
    decode_hex,
    to_hex,
)
from .registry import AccountRecord, MemoryAccountStore
