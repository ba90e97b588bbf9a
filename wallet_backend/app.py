"""
FLASK APP FACTORY - WALLET 2FA BACKEND SERVER
==============================================

File này tạo Flask app, cấu hình CORS, logging, và đăng ký API blueprint.

CẤU HÌNH (biến môi trường, có thể override bằng tham số `config` khi test):
- WALLET2FA_DB            : đường dẫn file SQLite (mặc định database/wallet_2fa.db)
- WALLET2FA_STRICT_KEYS   : "1" -> public key phải là điểm secp256k1 hợp lệ
- WALLET2FA_REPLAY_GUARD  : "1" -> mỗi OTP chỉ authenticate thành công một lần
- WALLET2FA_LOG_LEVEL     : INFO / DEBUG / ...
"""
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging
import os
import sys

from wallet_core import TwoFactorAuth, TwoFactorError, UsedCodeGuard
from wallet_database import DATABASE_FILE, SqliteAccountStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _flag(value) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def setup_logger(level: str = None) -> None:
    """Cấu hình root logger một lần (stream handler ra stderr)."""
    level = level or os.getenv("WALLET2FA_LOG_LEVEL", "INFO")
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper())


def create_app(config: dict = None, store=None, clock=None) -> Flask:
    """
    Tạo Flask app với một TwoFactorAuth riêng.

    Arguments:
        config: override cấu hình (DATABASE_FILE, STRICT_KEYS, REPLAY_GUARD, ...)
        store: account store dựng sẵn (mặc định SqliteAccountStore(DATABASE_FILE))
        clock: đồng hồ server (mặc định time.time); client không bao giờ gửi `now`
    """
    app = Flask(__name__)
    app.config.update(
        DATABASE_FILE=os.getenv("WALLET2FA_DB", DATABASE_FILE),
        STRICT_KEYS=_flag(os.getenv("WALLET2FA_STRICT_KEYS", "0")),
        REPLAY_GUARD=_flag(os.getenv("WALLET2FA_REPLAY_GUARD", "0")),
    )
    if config:
        app.config.update(config)

    setup_logger(app.config.get("LOG_LEVEL"))

    # BẬT CORS cho wallet UI chạy ở origin khác
    CORS(app)

    if store is None:
        store = SqliteAccountStore(app.config["DATABASE_FILE"])
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    app.extensions["two_factor_auth"] = TwoFactorAuth(
        store,
        replay_guard=UsedCodeGuard() if app.config["REPLAY_GUARD"] else None,
        strict_public_key=app.config["STRICT_KEYS"],
        **kwargs
    )

    from wallet_backend.routes import auth_bp
    app.register_blueprint(auth_bp)

    app.register_error_handler(TwoFactorError, _handle_domain_error)
    app.register_error_handler(HTTPException, _handle_http_error)

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok"})

    logger.info("Wallet 2FA backend ready (db=%s, replay_guard=%s, strict_keys=%s)",
                app.config["DATABASE_FILE"], app.config["REPLAY_GUARD"], app.config["STRICT_KEYS"])
    return app


def _handle_domain_error(e: TwoFactorError):
    return jsonify({"error": e.message, "kind": type(e).__name__}), e.status_code


def _handle_http_error(e: HTTPException):
    return jsonify({"error": e.description}), e.code


# KHỞI CHẠY SERVER
if __name__ == '__main__':
    create_app().run(debug=False, host='0.0.0.0', port=int(os.getenv("PORT", "5000")))
