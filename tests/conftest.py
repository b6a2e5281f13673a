"""
Shared fixtures. The environment is seeded before anything imports
config.settings, which exits the process on missing variables.
"""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("METRICS_BEARER_TOKEN", "metrics-secret")
os.environ.setdefault("XE_WALLET_ADDRESS", "xe_5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed")
os.environ.setdefault(
    "XE_WALLET_PRIVATE_KEY",
    "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318",
)

import fakeredis
import pytest

from repository.kv_store import KeyValueStore
from repository.request_ledger import RequestLedger

# Checksummed addresses (mixed-case checksum test vectors).
ADDR_A = "xe_5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
ADDR_B = "xe_fB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
ADDR_C = "xe_dbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB"
ADDR_D = "xe_D1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb"


def tweet_url(status_id: int, user: str = "someone") -> str:
    return f"https://twitter.com/{user}/status/{status_id}"


class FakeClock:
    """Settable epoch-ms clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client):
    return KeyValueStore(redis_client)


@pytest.fixture
def ledger(store):
    return RequestLedger(store)


@pytest.fixture
def clock():
    return FakeClock()
