"""
WALLET 2FA API ROUTES - FLASK BLUEPRINT (/api/v1)

Danh tính caller do transport layer xác định: header `X-Account-Id`
(địa chỉ ví). Thời gian luôn lấy từ đồng hồ server, không nhận từ client.

VÍ DỤ:
curl -X POST http://localhost:5000/api/v1/register -H "X-Account-Id: 0xabc" \
     -H "Content-Type: application/json" \
     -d '{"username": "alice", "public_key": "0x04...", "otp_seed": "0x..."}'
curl http://localhost:5000/api/v1/otp -H "X-Account-Id: 0xabc"
curl -X POST http://localhost:5000/api/v1/authenticate -H "X-Account-Id: 0xabc" \
     -H "Content-Type: application/json" -d '{"public_key": "0x04...", "otp": "042517"}'
"""

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest, NotFound
import logging

from wallet_core import (
    current_step,
    decode_hex,
    format_otp,
    parse_otp,
    remaining_seconds,
    to_hex,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint('wallet_2fa', __name__, url_prefix='/api/v1')

# Header do gateway/reverse proxy tin cậy gắn vào sau khi đã xác minh chủ ví.
# Không expose API trực tiếp ra client: client có thể tự đặt header để giả danh ví khác.
ACCOUNT_HEADER = 'X-Account-Id'


def _service():
    return current_app.extensions['two_factor_auth']


def _caller_id() -> str:
    account_id = request.headers.get(ACCOUNT_HEADER, '').strip()
    if not account_id:
        raise BadRequest(f"{ACCOUNT_HEADER} header is required")
    return account_id


def _json_body(*required) -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("JSON body is required")
    missing = [k for k in required if k not in data]
    if missing:
        raise BadRequest(f"Missing fields: {', '.join(missing)}")
    return data


def _hex_field(data: dict, name: str) -> bytes:
    try:
        return decode_hex(data[name])
    except ValueError:
        raise BadRequest(f"{name} must be a hex string")


def _otp_field(data: dict) -> int:
    try:
        return parse_otp(data['otp'])
    except ValueError:
        raise BadRequest("otp must be a 6-digit code")


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    ĐĂNG KÝ TÀI KHOẢN

    Input: {"username": "alice", "public_key": "0x04...(65 bytes)", "otp_seed": "0x...(32 bytes)"}
    Output: 201 {"account_id": ..., "username": ...}
    Lỗi: 409 AlreadyRegistered, 400 InvalidPublicKeyLength / InvalidOtpSeedLength / ...
    """
    account_id = _caller_id()
    data = _json_body('username', 'public_key', 'otp_seed')
    record = _service().register(
        account_id,
        data['username'],
        _hex_field(data, 'public_key'),
        _hex_field(data, 'otp_seed'),
    )
    return jsonify({"account_id": record.account_id, "username": record.username}), 201


@auth_bp.route('/otp', methods=['GET'])
def generate_otp():
    """
    LẤY MÃ OTP HIỆN TẠI CỦA CALLER

    Output: {"otp": "042517", "step": 33, "remaining": 20}
    """
    account_id = _caller_id()
    service = _service()
    now = service.clock()
    code = service.generate_otp(account_id, now=now)
    return jsonify({
        "otp": format_otp(code),
        "step": current_step(now),
        "remaining": remaining_seconds(now),
    })


@auth_bp.route('/verify', methods=['POST'])
def verify():
    """
    XÁC MINH OTP (không ghi audit, không bao giờ lỗi vì sai mã)

    Input: {"public_key": "0x04...", "otp": "042517"}
    Output: {"valid": true} hoặc {"valid": false}
    """
    account_id = _caller_id()
    data = _json_body('public_key', 'otp')
    valid = _service().is_valid(account_id, _hex_field(data, 'public_key'), _otp_field(data))
    return jsonify({"valid": valid})


@auth_bp.route('/authenticate', methods=['POST'])
def authenticate():
    """
    XÁC THỰC USER (ghi audit UserAuthenticated dù thành công hay thất bại)

    Input: {"public_key": "0x04...", "otp": "042517"}
    Output: {"account_id": ..., "authenticated": true|false}; 404 nếu chưa đăng ký
    """
    account_id = _caller_id()
    data = _json_body('public_key', 'otp')
    ok = _service().authenticate(account_id, _hex_field(data, 'public_key'), _otp_field(data))
    return jsonify({"account_id": account_id, "authenticated": ok})


@auth_bp.route('/accounts/<string:account_id>', methods=['GET'])
def get_account(account_id):
    """Trả về toàn bộ AccountRecord (bao gồm otp_seed, giống getUserDetails)."""
    record = _service().get_account(account_id)
    if record is None:
        raise NotFound(f"User not registered: {account_id}")
    return jsonify({
        "account_id": record.account_id,
        "username": record.username,
        "public_key": to_hex(record.public_key),
        "otp_seed": to_hex(record.otp_seed),
        "created_at": record.created_at,
    })


@auth_bp.route('/events/<string:account_id>', methods=['GET'])
def get_events(account_id):
    """Audit trail (UserRegistered / UserAuthenticated) của một account."""
    events = _service().store.events(account_id)
    return jsonify({"account_id": account_id, "events": [e.to_dict() for e in events]})
