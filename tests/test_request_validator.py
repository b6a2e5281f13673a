"""
tests/test_request_validator.py

Tests for proof/address parsing and the admission rules.
"""

import asyncio
import pytest

from conftest import ADDR_A, ADDR_B, tweet_url
from core.request_validator import (
    RequestValidator,
    checksum_address_is_valid,
    extract_address,
    tweet_id,
)
from util.errors import AdmissionError

COOLDOWN_MS = 60_000


class TestParsing:
    def test_tweet_id(self):
        assert tweet_id("https://twitter.com/alice/status/1234567890") == "1234567890"
        assert tweet_id("https://twitter.com/alice/status/99?s=20") == "99"

    @pytest.mark.parametrize(
        "url",
        [
            None,
            123,
            "",
            "http://twitter.com/alice/status/1",
            "https://example.com/alice/status/1",
            "https://twitter.com/alice",
            "see https://twitter.com/alice/status/1",
        ],
    )
    def test_tweet_id_rejects(self, url):
        assert tweet_id(url) is None

    @pytest.mark.parametrize(
        "address",
        [
            ADDR_A,
            ADDR_B,
            "xe_52908400098527886E0F7030069857D2E4169EE7",
            "xe_de709f2102306220921060314715629080e2fb77",
        ],
    )
    def test_checksum_valid(self, address):
        assert checksum_address_is_valid(address) is True

    @pytest.mark.parametrize(
        "address",
        [
            "xe_5AAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",  # one letter case flipped
            "xe_5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",  # lower-cased
            "xe_5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAe",  # 39 chars
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
            "",
        ],
    )
    def test_checksum_invalid(self, address):
        assert checksum_address_is_valid(address) is False

    def test_extract_address(self):
        text = f"Requesting XE from the faucet {ADDR_A} #xe"
        assert extract_address(text) == ADDR_A

    def test_extract_address_first_match_wins(self):
        assert extract_address(f"{ADDR_B} then {ADDR_A}") == ADDR_B

    def test_extract_address_needs_word_boundary(self):
        assert extract_address(f"{ADDR_A}ff") is None
        assert extract_address("no address here") is None
        assert extract_address(None) is None


class TestRequestValidator:
    @pytest.fixture
    def validator(self, ledger, clock):
        return RequestValidator(ledger, COOLDOWN_MS, clock=clock)

    @pytest.mark.asyncio
    async def test_admit_writes_three_keys(self, validator, store, clock):
        url = tweet_url(1)
        address = await validator.admit(url, f"gimme {ADDR_A}")

        assert address == ADDR_A
        assert await store.get(f"url:{url}") == ADDR_A
        assert await store.get(f"pending:{ADDR_A}") == ADDR_A
        assert await store.get(f"request:{ADDR_A}") == str(clock.now)

    @pytest.mark.asyncio
    async def test_malformed_url(self, validator, store):
        with pytest.raises(AdmissionError) as exc:
            await validator.admit("https://example.com/status/1", f"{ADDR_A}")
        assert exc.value.kind == "malformedProofUrl"
        assert await store.count_by_prefix("pending") == 0

    @pytest.mark.asyncio
    async def test_same_url_twice_is_duplicate(self, validator, clock):
        url = tweet_url(2)
        assert await validator.admit(url, ADDR_A) == ADDR_A

        clock.advance(COOLDOWN_MS * 10)
        with pytest.raises(AdmissionError) as exc:
            await validator.admit(url, ADDR_A)
        assert exc.value.kind == "duplicateProof"

    @pytest.mark.asyncio
    async def test_no_address(self, validator):
        with pytest.raises(AdmissionError) as exc:
            await validator.admit(tweet_url(3), "just a tweet")
        assert exc.value.kind == "noValidAddress"

    @pytest.mark.asyncio
    async def test_bad_checksum(self, validator, store):
        with pytest.raises(AdmissionError) as exc:
            await validator.admit(tweet_url(4), "xe_5AAeb6053F3E94C9b9A09f33669435E7Ef1BeAed")
        assert exc.value.kind == "noValidAddress"
        assert await store.get(f"url:{tweet_url(4)}") is None

    @pytest.mark.asyncio
    async def test_cooldown_then_window_elapses(self, validator, store, clock):
        assert await validator.admit(tweet_url(5), ADDR_A) == ADDR_A

        clock.advance(COOLDOWN_MS - 1)
        with pytest.raises(AdmissionError) as exc:
            await validator.admit(tweet_url(6), ADDR_A)
        assert exc.value.kind == "cooldownActive"
        # A rejected proof is not consumed
        assert await store.get(f"url:{tweet_url(6)}") is None

        clock.advance(1)
        assert await validator.admit(tweet_url(7), ADDR_A) == ADDR_A
        assert await store.get(f"request:{ADDR_A}") == str(clock.now)

    @pytest.mark.asyncio
    async def test_cooldown_is_per_address(self, validator):
        assert await validator.admit(tweet_url(8), ADDR_A) == ADDR_A
        assert await validator.admit(tweet_url(9), ADDR_B) == ADDR_B

    @pytest.mark.asyncio
    async def test_concurrent_admissions_same_address(self, validator, store):
        results = await asyncio.gather(
            validator.admit(tweet_url(10), ADDR_A),
            validator.admit(tweet_url(11), ADDR_A),
            return_exceptions=True,
        )

        admitted = [r for r in results if r == ADDR_A]
        rejected = [r for r in results if isinstance(r, AdmissionError)]
        assert len(admitted) == 1
        assert len(rejected) == 1
        assert rejected[0].kind == "cooldownActive"
        assert await store.count_by_prefix("url") == 1

    @pytest.mark.asyncio
    async def test_concurrent_admissions_same_url(self, validator, store):
        url = tweet_url(12)
        results = await asyncio.gather(
            validator.admit(url, ADDR_A),
            validator.admit(url, ADDR_A),
            return_exceptions=True,
        )

        kinds = sorted(r.kind for r in results if isinstance(r, AdmissionError))
        assert results.count(ADDR_A) == 1
        assert kinds == ["duplicateProof"]
        assert await store.count_by_prefix("pending") == 1
