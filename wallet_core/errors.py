"""
errors.py — Các loại lỗi của hệ thống 2FA gắn với ví.

Chỉ đăng ký (register) và tra cứu tài khoản chưa tồn tại mới raise lỗi.
Sai public key / sai OTP / OTP hết hạn KHÔNG phải lỗi: verifier trả về False.

status_code được Flask error handler dùng để map sang HTTP status.
"""


class TwoFactorError(Exception):
    """Base class cho mọi lỗi domain."""

    status_code = 400

    def __init__(self, message: str, account_id: str = None):
        super().__init__(message)
        self.message = message
        self.account_id = account_id


class NotRegistered(TwoFactorError):
    status_code = 404

    def __init__(self, account_id: str):
        super().__init__(f"User not registered: {account_id}", account_id)


class AlreadyRegistered(TwoFactorError):
    status_code = 409

    def __init__(self, account_id: str):
        super().__init__(f"User already registered: {account_id}", account_id)


# --- Registration input errors ---------------------------------------------
class RegistrationError(TwoFactorError):
    """Input bị từ chối khi đăng ký; không có gì được ghi xuống store."""


class InvalidAccountId(RegistrationError):
    pass


class InvalidUsername(RegistrationError):
    pass


class InvalidPublicKeyLength(RegistrationError):
    def __init__(self, length: int, account_id: str = None):
        super().__init__(f"Public key must be 65 bytes, got {length}", account_id)
        self.length = length


class InvalidPublicKey(RegistrationError):
    """Public key không phải bytes, hoặc (strict mode) không phải điểm hợp lệ trên secp256k1."""


class InvalidOtpSeed(RegistrationError):
    pass


class InvalidOtpSeedLength(InvalidOtpSeed):
    def __init__(self, length: int, account_id: str = None):
        super().__init__(f"OTP seed must be 32 bytes, got {length}", account_id)
        self.length = length
