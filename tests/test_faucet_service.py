"""
tests/test_faucet_service.py

Tests for the admission flow and metrics rendering.
"""

import pytest
from unittest.mock import AsyncMock, patch

from conftest import ADDR_A, ADDR_B, tweet_url
from core.request_validator import RequestValidator
from service.faucet_service import FaucetService, RequestTally
from service.twitter_service import TwitterService
from util.enums import MetricsMode
from util.errors import AdmissionError, StorageError, UpstreamError

COOLDOWN_MS = 60_000


@pytest.fixture
def twitter():
    tw = AsyncMock(spec=TwitterService)
    tw.fetch_post_text.return_value = f"xe faucet please {ADDR_A}"
    return tw


@pytest.fixture
def tally():
    return RequestTally()


@pytest.fixture
def service(ledger, twitter, tally, clock):
    return FaucetService(ledger, RequestValidator(ledger, COOLDOWN_MS, clock=clock), twitter, tally)


class TestRequestDisbursement:
    @pytest.mark.asyncio
    async def test_queues_address(self, service, ledger, twitter):
        assert await service.request_disbursement(tweet_url(1)) == ADDR_A
        assert await ledger.pending() == [ADDR_A]
        twitter.fetch_post_text.assert_awaited_once_with(tweet_url(1))

    @pytest.mark.asyncio
    async def test_duplicate_skips_lookup(self, service, twitter):
        await service.request_disbursement(tweet_url(1))
        twitter.fetch_post_text.reset_mock()

        with pytest.raises(AdmissionError) as exc:
            await service.request_disbursement(tweet_url(1))

        assert exc.value.kind == "duplicateProof"
        twitter.fetch_post_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_skips_lookup(self, service, twitter):
        with pytest.raises(AdmissionError) as exc:
            await service.request_disbursement("https://example.com/status/1")

        assert exc.value.kind == "malformedProofUrl"
        twitter.fetch_post_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_failure_is_proof_unavailable(self, service, twitter, ledger):
        twitter.fetch_post_text.side_effect = UpstreamError("down")

        with pytest.raises(AdmissionError) as exc:
            await service.request_disbursement(tweet_url(2))

        assert exc.value.kind == "proofUnavailable"
        assert exc.value.status_code == 503
        assert await ledger.proof_claimed(tweet_url(2)) is False

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported(self, service, ledger):
        with patch.object(ledger, "enqueue", AsyncMock(side_effect=StorageError("x"))):
            with pytest.raises(AdmissionError) as exc:
                await service.request_disbursement(tweet_url(3))

        assert exc.value.kind == "storageUnavailable"
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_cooldown(self, service, twitter, clock):
        await service.request_disbursement(tweet_url(4))

        with pytest.raises(AdmissionError) as exc:
            await service.request_disbursement(tweet_url(5))
        assert exc.value.kind == "cooldownActive"

        clock.advance(COOLDOWN_MS)
        assert await service.request_disbursement(tweet_url(6)) == ADDR_A


class TestMetrics:
    @pytest.mark.asyncio
    async def test_ledger_counters(self, service, ledger, twitter):
        await service.request_disbursement(tweet_url(1))
        twitter.fetch_post_text.return_value = f"{ADDR_B}"
        await service.request_disbursement(tweet_url(2))
        await ledger.acknowledge(ADDR_B)

        text = await service.metrics(MetricsMode.LEDGER)

        assert text.splitlines() == [
            "pending_requests 1",
            "total_requests 2",
            "failed_requests 0",
        ]

    @pytest.mark.asyncio
    async def test_tally_resets_on_read(self, service, tally):
        for _ in range(3):
            tally.increment()

        assert await service.metrics(MetricsMode.TALLY) == "requests 3"
        assert await service.metrics(MetricsMode.TALLY) == "requests 0"
