# service/faucet_service.py
import logging
from core.request_validator import RequestValidator
from repository.request_ledger import RequestLedger
from service.twitter_service import TwitterService
from util.enums import ErrorMessage, MetricsMode
from util.errors import AdmissionError, StorageError, UpstreamError

logger = logging.getLogger(__name__)


class RequestTally:
    """Count of HTTP requests since the last metrics scrape."""

    def __init__(self) -> None:
        self._count = 0

    def increment(self) -> None:
        self._count += 1

    def drain(self) -> int:
        count, self._count = self._count, 0
        return count


class FaucetService:
    def __init__(
        self,
        ledger: RequestLedger,
        validator: RequestValidator,
        twitter: TwitterService,
        tally: RequestTally,
    ) -> None:
        self._ledger = ledger
        self._validator = validator
        self._twitter = twitter
        self._tally = tally

    async def request_disbursement(self, url: object) -> str:
        """
        Admit a tweet url: cheap checks first, one tweet lookup, then the full
        validation + enqueue. Returns the queued address or raises AdmissionError.
        """
        try:
            await self._validator.precheck(url)
            try:
                text = await self._twitter.fetch_post_text(url)
            except UpstreamError as e:
                logger.error("admission.proof_unavailable url=%s err=%s", url, e)
                raise AdmissionError(ErrorMessage.PROOF_UNAVAILABLE) from e
            try:
                return await self._validator.admit(url, text)
            except StorageError as e:
                raise AdmissionError(ErrorMessage.STORAGE_UNAVAILABLE) from e
        except AdmissionError as e:
            logger.info("admission.rejected kind=%s url=%s", e.kind, url)
            raise

    async def metrics(self, mode: MetricsMode) -> str:
        lines: list[str] = []
        if mode == MetricsMode.TALLY:
            lines.append(f"requests {self._tally.drain()}")
        else:
            lines.append(f"pending_requests {await self._ledger.pending_count()}")
            lines.append(f"total_requests {await self._ledger.request_count()}")
            lines.append(f"failed_requests {await self._ledger.failed_count()}")
        return "\n".join(lines)
