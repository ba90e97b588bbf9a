#!/usr/bin/env python3
"""
otp_core.py — Core library: time window + OTP derivation gắn với public key.

Mục tiêu:
- Chứa các hàm thuần (pure functions) để TwoFactorAuth, REST API và CLI dùng chung.
- Không đọc/ghi store, không đọc đồng hồ: `now` luôn do caller (server) truyền vào.

Giải thuật (hợp đồng tương thích, mọi client/verifier phải khớp từng bit):
    step = floor(now / WINDOW_SECONDS)
    msg  = otp_seed || public_key || uint64_be(step)
    otp  = int_be(HMAC-SHA256(key=otp_seed, msg)) mod 10^6

Lưu ý bảo mật:
- OTP là mã xác minh, không phải nonce: gọi lại trong cùng 30s cho ra cùng một mã.
- Không có chống replay ở tầng này (xem wallet_core.auth.UsedCodeGuard).
"""

from typing import Optional, Union
import binascii
import hashlib
import hmac
import math
import struct

# --- Config / constants ----------------------------------------------------
WINDOW_SECONDS = 30         # độ dài một step (giây)
OTP_DIGITS = 6              # mã luôn hiển thị 6 chữ số
OTP_MODULUS = 10 ** OTP_DIGITS
PUBLIC_KEY_BYTES = 65       # uncompressed EC point: 0x04 || X || Y
OTP_SEED_BYTES = 32
LOOK_BACK_STEPS = 1         # chấp nhận step hiện tại và step ngay trước đó
MAX_STEP = 2 ** 64 - 1


# --- Hex helpers -----------------------------------------------------------
def decode_hex(value: Union[str, bytes]) -> bytes:
    """
    Chuyển chuỗi hex (có hoặc không có tiền tố 0x) sang bytes.

    bytes được trả về nguyên vẹn, để caller Python truyền thẳng raw key.

    Raises:
        ValueError: nếu không phải hex hợp lệ
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ValueError("Expected a hex string")
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise ValueError("Invalid hex string") from e


def to_hex(raw: bytes) -> str:
    """bytes -> '0x...' (dạng ví Ethereum hiển thị)."""
    return "0x" + binascii.hexlify(raw).decode("ascii")


# --- Time window -----------------------------------------------------------
def current_step(now: Union[int, float]) -> int:
    """
    Map thời gian (epoch seconds) sang chỉ số step.

    - step = floor(now / WINDOW_SECONDS)
    - Một timestamp chia hết cho 30 là điểm bắt đầu của step mới.

    Raises:
        ValueError: nếu now âm, NaN hoặc vô hạn
    """
    if isinstance(now, float) and not math.isfinite(now):
        raise ValueError(f"Timestamp must be finite: {now!r}")
    if now < 0:
        raise ValueError("Timestamp must not be negative")
    return int(now // WINDOW_SECONDS)


def remaining_seconds(now: Union[int, float]) -> int:
    """Số giây còn lại trước khi step hiện tại kết thúc (1..WINDOW_SECONDS)."""
    return int(WINDOW_SECONDS - (int(now) % WINDOW_SECONDS))


# --- Derivation ------------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """Step -> 8-byte big-endian (giống counter của RFC4226)."""
    return struct.pack(">Q", i)


def derive_otp(otp_seed: bytes, public_key: bytes, step: int) -> int:
    """
    Sinh OTP cho (seed, public key, step).

    Steps:
    1. msg = otp_seed || public_key || uint64_be(step)
    2. digest = HMAC-SHA256(key=otp_seed, msg)
    3. otp = int(digest, big-endian) % 1_000_000

    Trả về:
        int trong [0, 999_999]; dùng format_otp() khi hiển thị.

    Raises:
        ValueError: nếu step không nằm trong [0, 2**64 - 1]
    """
    if isinstance(step, bool) or not isinstance(step, int) or step < 0 or step > MAX_STEP:
        raise ValueError(f"Invalid step: {step!r}")
    msg = bytes(otp_seed) + bytes(public_key) + int_to_bytes(step)
    digest = hmac.new(bytes(otp_seed), msg, hashlib.sha256).digest()
    return int.from_bytes(digest, "big") % OTP_MODULUS


def format_otp(otp: int) -> str:
    """Zero-pad OTP thành đúng 6 ký tự, ví dụ 42517 -> '042517'."""
    return str(otp).zfill(OTP_DIGITS)


def parse_otp(value: Union[int, str]) -> int:
    """
    Chuẩn hóa OTP do user gửi lên (int hoặc chuỗi 6 chữ số) thành int.

    Raises:
        ValueError: bool, số âm, >= 10^6, hoặc chuỗi không đúng 6 chữ số
    """
    if isinstance(value, bool):
        raise ValueError("OTP must be an integer or a 6-digit string")
    if isinstance(value, int):
        if 0 <= value < OTP_MODULUS:
            return value
        raise ValueError(f"OTP out of range: {value}")
    if isinstance(value, str):
        text = value.strip()
        if len(text) == OTP_DIGITS and text.isascii() and text.isdigit():
            return int(text)
    raise ValueError("OTP must be an integer or a 6-digit string")


# --- Verification ----------------------------------------------------------
def find_matching_step(otp_seed: bytes, public_key: bytes, otp: int, now: Union[int, float]) -> Optional[int]:
    """
    Trả về step mà `otp` khớp (step hiện tại trước, rồi step trước đó), hoặc None.

    - Chỉ look-back, không bao giờ look-ahead.
    - So sánh bằng hmac.compare_digest trên chuỗi zero-padded.
    """
    step = current_step(now)
    candidate = format_otp(otp)
    for offset in range(0, LOOK_BACK_STEPS + 1):
        test_step = step - offset
        if test_step < 0:
            continue
        expected = format_otp(derive_otp(otp_seed, public_key, test_step))
        if hmac.compare_digest(expected, candidate):
            return test_step
    return None


def keys_equal(a: bytes, b: bytes) -> bool:
    """So sánh public key từng byte (constant-time)."""
    return hmac.compare_digest(bytes(a), bytes(b))
