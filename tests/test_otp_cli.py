import re
import time

import pytest

from wallet_core import current_step, derive_otp, format_otp, to_hex
from wallet_core.otp_cli import main

from conftest import ACCOUNT, OTHER_PUBLIC_KEY, OTP_SEED, PUBLIC_KEY


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "cli.db")


def _register(db, public_key=PUBLIC_KEY):
    return main(["--db", db, "register", "--account", ACCOUNT, "--username", "alice",
                 "--public-key", to_hex(public_key), "--seed", to_hex(OTP_SEED)])


def _current_code():
    return format_otp(derive_otp(OTP_SEED, PUBLIC_KEY, current_step(time.time())))


def test_register_and_show_account(db, capsys):
    assert _register(db) == 0
    assert main(["--db", db, "account", "--account", ACCOUNT]) == 0
    out = capsys.readouterr().out
    assert "Registered 'alice'" in out
    assert to_hex(PUBLIC_KEY) in out
    assert to_hex(OTP_SEED) in out


def test_register_twice_exits_2(db, capsys):
    _register(db)
    assert _register(db) == 2
    assert "already registered" in capsys.readouterr().out


def test_register_short_key_exits_2(db, capsys):
    assert _register(db, public_key=PUBLIC_KEY[:64]) == 2
    assert "65 bytes" in capsys.readouterr().out


def test_otp_prints_six_digits(db, capsys):
    _register(db)
    capsys.readouterr()
    assert main(["--db", db, "otp", "--account", ACCOUNT]) == 0
    assert re.search(r"OTP: \d{6}\b", capsys.readouterr().out)


def test_otp_unregistered(db, capsys):
    assert main(["--db", db, "otp", "--account", ACCOUNT]) == 2
    assert "not registered" in capsys.readouterr().out


def test_verify_and_authenticate(db, capsys):
    _register(db)
    code = _current_code()
    assert main(["--db", db, "verify", "--account", ACCOUNT,
                 "--public-key", to_hex(PUBLIC_KEY), "--code", code]) == 0
    assert main(["--db", db, "authenticate", "--account", ACCOUNT,
                 "--public-key", to_hex(PUBLIC_KEY), "--code", code]) == 0
    assert main(["--db", db, "authenticate", "--account", ACCOUNT,
                 "--public-key", to_hex(OTHER_PUBLIC_KEY), "--code", code]) == 1
    out = capsys.readouterr().out
    assert "VALID" in out
    assert "SUCCEEDED" in out
    assert "FAILED" in out


def test_malformed_code_exits_2(db, capsys):
    _register(db)
    assert main(["--db", db, "verify", "--account", ACCOUNT,
                 "--public-key", to_hex(PUBLIC_KEY), "--code", "12"]) == 2


def test_step(capsys):
    assert main(["step"]) == 0
    assert re.match(r"step=\d+ remaining=\d+s", capsys.readouterr().out)
