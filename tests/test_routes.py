import pytest

from wallet_backend import create_app
from wallet_core import MemoryAccountStore, derive_otp, format_otp, to_hex

from conftest import ACCOUNT, OTHER_PUBLIC_KEY, OTP_SEED, PUBLIC_KEY, FakeClock

HEADERS = {"X-Account-Id": ACCOUNT}


@pytest.fixture
def clock():
    return FakeClock(1000)


@pytest.fixture
def app(tmp_path, clock):
    return create_app(config={"DATABASE_FILE": str(tmp_path / "api.db"), "TESTING": True}, clock=clock)


@pytest.fixture
def client(app):
    return app.test_client()


def _register(client, public_key=PUBLIC_KEY, seed=OTP_SEED, headers=HEADERS):
    return client.post("/api/v1/register", headers=headers, json={
        "username": "alice",
        "public_key": to_hex(public_key),
        "otp_seed": to_hex(seed),
    })


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_register(client):
    resp = _register(client)
    assert resp.status_code == 201
    assert resp.get_json() == {"account_id": ACCOUNT, "username": "alice"}


def test_register_accepts_hex_without_prefix(client):
    resp = client.post("/api/v1/register", headers=HEADERS, json={
        "username": "alice", "public_key": PUBLIC_KEY.hex(), "otp_seed": OTP_SEED.hex(),
    })
    assert resp.status_code == 201


def test_register_twice(client):
    _register(client)
    resp = _register(client)
    assert resp.status_code == 409
    assert resp.get_json()["kind"] == "AlreadyRegistered"


def test_register_short_key(client):
    resp = _register(client, public_key=PUBLIC_KEY[:64])
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "InvalidPublicKeyLength"


def test_register_bad_hex(client):
    resp = client.post("/api/v1/register", headers=HEADERS, json={
        "username": "alice", "public_key": "0xnothex", "otp_seed": to_hex(OTP_SEED),
    })
    assert resp.status_code == 400
    assert "public_key" in resp.get_json()["error"]


def test_register_missing_fields(client):
    resp = client.post("/api/v1/register", headers=HEADERS, json={"username": "alice"})
    assert resp.status_code == 400
    assert "public_key" in resp.get_json()["error"]


def test_missing_caller_header(client):
    resp = _register(client, headers={})
    assert resp.status_code == 400
    assert "X-Account-Id" in resp.get_json()["error"]


def test_otp_is_zero_padded_string(client):
    _register(client)
    data = client.get("/api/v1/otp", headers=HEADERS).get_json()
    assert data["otp"] == format_otp(derive_otp(OTP_SEED, PUBLIC_KEY, 33))
    assert len(data["otp"]) == 6
    assert data["step"] == 33
    assert data["remaining"] == 20


def test_otp_unregistered(client):
    resp = client.get("/api/v1/otp", headers=HEADERS)
    assert resp.status_code == 404
    assert resp.get_json()["kind"] == "NotRegistered"


def test_verify(client, clock):
    _register(client)
    code = client.get("/api/v1/otp", headers=HEADERS).get_json()["otp"]

    ok = client.post("/api/v1/verify", headers=HEADERS, json={"public_key": to_hex(PUBLIC_KEY), "otp": code})
    assert ok.get_json() == {"valid": True}

    wrong_key = client.post("/api/v1/verify", headers=HEADERS,
                            json={"public_key": to_hex(OTHER_PUBLIC_KEY), "otp": code})
    assert wrong_key.get_json() == {"valid": False}

    clock.advance(65)
    expired = client.post("/api/v1/verify", headers=HEADERS, json={"public_key": to_hex(PUBLIC_KEY), "otp": code})
    assert expired.get_json() == {"valid": False}


def test_verify_unregistered_is_false(client):
    resp = client.post("/api/v1/verify", headers=HEADERS, json={"public_key": to_hex(PUBLIC_KEY), "otp": "123456"})
    assert resp.status_code == 200
    assert resp.get_json() == {"valid": False}


def test_verify_malformed_otp(client):
    _register(client)
    resp = client.post("/api/v1/verify", headers=HEADERS, json={"public_key": to_hex(PUBLIC_KEY), "otp": "12ab"})
    assert resp.status_code == 400


def test_client_cannot_supply_time(client):
    _register(client)
    old_code = format_otp(derive_otp(OTP_SEED, PUBLIC_KEY, 10))
    resp = client.post("/api/v1/verify", headers=HEADERS,
                       json={"public_key": to_hex(PUBLIC_KEY), "otp": old_code, "now": 300})
    assert resp.get_json()["valid"] is (old_code in {
        format_otp(derive_otp(OTP_SEED, PUBLIC_KEY, 33)),
        format_otp(derive_otp(OTP_SEED, PUBLIC_KEY, 32)),
    })


def test_authenticate(client):
    _register(client)
    code = client.get("/api/v1/otp", headers=HEADERS).get_json()["otp"]
    resp = client.post("/api/v1/authenticate", headers=HEADERS, json={"public_key": to_hex(PUBLIC_KEY), "otp": code})
    assert resp.status_code == 200
    assert resp.get_json() == {"account_id": ACCOUNT, "authenticated": True}

    events = client.get(f"/api/v1/events/{ACCOUNT}").get_json()["events"]
    assert [e["event"] for e in events] == ["UserRegistered", "UserAuthenticated"]
    assert events[-1]["success"] is True


def test_authenticate_wrong_code_is_false(client):
    _register(client)
    code = derive_otp(OTP_SEED, PUBLIC_KEY, 33)
    resp = client.post("/api/v1/authenticate", headers=HEADERS,
                       json={"public_key": to_hex(PUBLIC_KEY), "otp": (code + 1) % 1_000_000})
    assert resp.status_code == 200
    assert resp.get_json()["authenticated"] is False


def test_authenticate_unregistered(client):
    resp = client.post("/api/v1/authenticate", headers=HEADERS, json={"public_key": to_hex(PUBLIC_KEY), "otp": 123456})
    assert resp.status_code == 404


def test_get_account(client):
    _register(client)
    data = client.get(f"/api/v1/accounts/{ACCOUNT}").get_json()
    assert data["username"] == "alice"
    assert data["public_key"] == to_hex(PUBLIC_KEY)
    assert data["otp_seed"] == to_hex(OTP_SEED)
    assert data["created_at"] == 1000


def test_get_account_unknown(client):
    resp = client.get(f"/api/v1/accounts/{ACCOUNT}")
    assert resp.status_code == 404
    assert "error" in resp.get_json()


def test_replay_guard_enabled(clock):
    app = create_app(config={"REPLAY_GUARD": True}, store=MemoryAccountStore(), clock=clock)
    client = app.test_client()
    _register(client)
    code = client.get("/api/v1/otp", headers=HEADERS).get_json()["otp"]
    body = {"public_key": to_hex(PUBLIC_KEY), "otp": code}

    assert client.post("/api/v1/authenticate", headers=HEADERS, json=body).get_json()["authenticated"] is True
    assert client.post("/api/v1/authenticate", headers=HEADERS, json=body).get_json()["authenticated"] is False


def test_strict_keys_enabled(clock):
    app = create_app(config={"STRICT_KEYS": True}, store=MemoryAccountStore(), clock=clock)
    resp = _register(app.test_client())
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "InvalidPublicKey"
