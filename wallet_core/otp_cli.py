#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper cho wallet_core (SQLite store)

Cung cấp các subcommand:
- register     : đăng ký account (username, public key 65 bytes, seed 32 bytes)
- otp          : in mã OTP hiện tại của account
- verify       : xác minh OTP (không ghi audit)
- authenticate : xác thực OTP (ghi audit UserAuthenticated)
- account      : in AccountRecord
- step         : in step hiện tại và số giây còn lại

Exit code: 0 = thành công / mã hợp lệ, 1 = mã không hợp lệ, 2 = lỗi.
"""

import argparse
import time

from wallet_core import (
    TwoFactorAuth,
    TwoFactorError,
    current_step,
    decode_hex,
    format_otp,
    parse_otp,
    remaining_seconds,
    to_hex,
)
from wallet_database import DATABASE_FILE, SqliteAccountStore


def _service(args) -> TwoFactorAuth:
    return TwoFactorAuth(SqliteAccountStore(args.db), strict_public_key=getattr(args, "strict", False))


# --- CLI command handlers ---
def cmd_register(args):
    record = _service(args).register(
        args.account, args.username, decode_hex(args.public_key), decode_hex(args.seed)
    )
    print(f"[+] Registered '{record.username}' for account {record.account_id}")
    return 0


def cmd_otp(args):
    now = time.time()
    code = _service(args).generate_otp(args.account, now=now)
    print(f"[account={args.account}] OTP: {format_otp(code)}  (valid ~{remaining_seconds(now):2d}s)")
    return 0


def cmd_verify(args):
    ok = _service(args).is_valid(args.account, decode_hex(args.public_key), parse_otp(args.code))
    if ok:
        print(f"[account={args.account}] [+] OTP code is VALID")
        return 0
    print(f"[account={args.account}] [-] OTP code is INVALID")
    return 1


def cmd_authenticate(args):
    ok = _service(args).authenticate(args.account, decode_hex(args.public_key), parse_otp(args.code))
    if ok:
        print(f"[account={args.account}] [+] Authentication SUCCEEDED")
        return 0
    print(f"[account={args.account}] [-] Authentication FAILED")
    return 1


def cmd_account(args):
    record = _service(args).get_account(args.account)
    if record is None:
        print(f"[!] User not registered: {args.account}")
        return 2
    print(f"account_id : {record.account_id}")
    print(f"username   : {record.username}")
    print(f"public_key : {to_hex(record.public_key)}")
    print(f"otp_seed   : {to_hex(record.otp_seed)}")
    return 0


def cmd_step(args):
    now = time.time()
    print(f"step={current_step(now)} remaining={remaining_seconds(now)}s")
    return 0


def cmd_help(args):
    print("'wallet-2fa -h' for help.")
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Wallet-bound 2FA (OTP) CLI")
    p.add_argument("--db", default=DATABASE_FILE, help="SQLite database file")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # register
    pr = sub.add_parser("register", help="Register an account")
    pr.add_argument("--account", required=True, help="Account id (wallet address)")
    pr.add_argument("--username", required=True)
    pr.add_argument("--public-key", required=True, help="65-byte public key, hex")
    pr.add_argument("--seed", required=True, help="32-byte OTP seed, hex")
    pr.add_argument("--strict", action="store_true", help="Require a valid secp256k1 point")
    pr.set_defaults(func=cmd_register)

    # otp
    po = sub.add_parser("otp", help="Show the current OTP for an account")
    po.add_argument("--account", required=True)
    po.set_defaults(func=cmd_otp)

    # verify / authenticate
    for name, func, help_text in (
        ("verify", cmd_verify, "Check an OTP without recording an audit event"),
        ("authenticate", cmd_authenticate, "Authenticate with an OTP and record the outcome"),
    ):
        pv = sub.add_parser(name, help=help_text)
        pv.add_argument("--account", required=True)
        pv.add_argument("--public-key", required=True, help="65-byte public key, hex")
        pv.add_argument("--code", required=True, help="6-digit OTP")
        pv.set_defaults(func=func)

    # account
    pa = sub.add_parser("account", help="Print the stored account record")
    pa.add_argument("--account", required=True)
    pa.set_defaults(func=cmd_account)

    # step
    ps = sub.add_parser("step", help="Print the current time step")
    ps.set_defaults(func=cmd_step)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except TwoFactorError as e:
        print(f"[!] {e.message}")
        return 2
    except ValueError as e:
        print(f"[!] {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
