import hashlib

import pytest

from wallet_core import MemoryAccountStore, TwoFactorAuth

# same shape as the fixture keys used against the deployed contract: "0x04" padded to 65 bytes
PUBLIC_KEY = bytes.fromhex("04".ljust(130, "0"))
OTHER_PUBLIC_KEY = bytes.fromhex("05".ljust(130, "0"))
OTP_SEED = hashlib.sha256(b"seed123").digest()
OTHER_SEED = hashlib.sha256(b"seed456").digest()
ACCOUNT = "0x8dBf5245AB11A1D74d4F0B47dC49DbA3F7BAB6fe"
OTHER_ACCOUNT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryAccountStore()


@pytest.fixture
def auth(store, clock):
    return TwoFactorAuth(store, clock=clock)


@pytest.fixture
def registered(auth):
    auth.register(ACCOUNT, "alice", PUBLIC_KEY, OTP_SEED)
    return auth
