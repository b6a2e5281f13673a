# core/batch_processor.py
import asyncio
import logging
from typing import Callable, List, Optional
from model.transaction import CycleReport, SignedTransaction, Transaction, TxData, TxResult
from repository.request_ledger import RequestLedger
from service.xe_ledger_service import XeLedgerService
from util.errors import StorageError, UpstreamError
from util.functions import now_ms
from util.timing import timed

logger = logging.getLogger(__name__)


class BatchProcessor:
    """
    Drains the pending queue into one signed batch per cycle.

    Flow per cycle:
      - skip outright if another cycle holds the gate (no queueing)
      - read pending addresses in key order; stop if there are none
      - fetch the faucet wallet nonce once, then allocate nonce, nonce+1, ...
      - sign one transfer per address and submit them as a single batch
      - each result is matched to its own transaction (match_results): accepted
        ones are acknowledged (pending deleted), rejected ones stay queued for the next
        cycle until `max_attempts` rejections move them to the dead letter
    """

    def __init__(
        self,
        ledger: RequestLedger,
        xe: XeLedgerService,
        *,
        faucet_address: str,
        private_key: str,
        amount: int,
        memo: str,
        max_attempts: int = 0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._ledger = ledger
        self._xe = xe
        self._sender = faucet_address
        self._private_key = private_key
        self._amount = int(amount)
        self._memo = memo
        self._max_attempts = int(max_attempts)
        self._clock = clock
        self._gate = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._gate.locked()

    async def run_cycle(self) -> CycleReport:
        # Nothing awaits between the check and the acquire, so no other task
        # can slip in on the single event loop.
        if self._gate.locked():
            logger.info("batch.cycle.skipped reason=in_progress")
            return CycleReport(skipped=True)

        async with self._gate:
            report = CycleReport()
            try:
                await self._cycle(report)
            except Exception:
                logger.exception("batch.cycle.error")
            return report

    async def _cycle(self, report: CycleReport) -> None:
        addresses = await self._ledger.pending()
        if not addresses:
            return
        # Admission stamps as of the scan; a newer stamp at ack time means the
        # address was re-admitted while this batch was in flight.
        stamps = {a: await self._ledger.last_request_ms(a) for a in addresses}

        with timed(logger, "batch.cycle", pending=len(addresses)) as fields:
            try:
                txs = await self._build_batch(addresses)
                report.submitted = len(txs)
                logger.info("batch.submit count=%d", len(txs))
                results = await self._xe.submit_batch(txs)
            except UpstreamError as e:
                logger.error("batch.cycle.upstream_error err=%s", e)
                report.retained = len(addresses)
                fields.update(retained=report.retained)
                return

            if len(results) != len(txs):
                logger.warning(
                    "batch.results.mismatch submitted=%d results=%d", len(txs), len(results)
                )
            for tx, result in zip(txs, match_results(txs, results)):
                await self._reconcile(tx, result, stamps.get(tx.recipient), report)

            fields.update(
                disbursed=report.disbursed,
                retained=report.retained,
                dead_lettered=report.dead_lettered,
            )

    async def _build_batch(self, addresses: List[str]) -> List[SignedTransaction]:
        logger.info("batch.nonce.fetch wallet=%s", self._sender)
        nonce = await self._xe.get_account_nonce(self._sender)
        txs: List[SignedTransaction] = []
        for address in addresses:
            logger.info("batch.tx.build recipient=%s nonce=%d", address, nonce)
            tx = Transaction(
                timestamp=self._clock(),
                sender=self._sender,
                recipient=address,
                amount=self._amount,
                data=TxData(memo=self._memo),
                nonce=nonce,
            )
            txs.append(self._xe.sign_transaction(tx, self._private_key))
            nonce += 1
        return txs

    async def _reconcile(
        self,
        tx: SignedTransaction,
        result: Optional[TxResult],
        admitted_ms: Optional[int],
        report: CycleReport,
    ) -> None:
        address = tx.recipient

        if result is None:
            # Outcome unknown: keep it queued, but do not count it as a rejection.
            logger.error("batch.tx.no_result recipient=%s hash=%s", address, tx.hash)
            report.retained += 1
            return

        tx_hash = result.hash or tx.hash
        try:
            if result.success:
                await self._ledger.acknowledge(address, admitted_ms=admitted_ms)
                logger.info("batch.tx.sent recipient=%s hash=%s", address, tx_hash)
                report.disbursed += 1
                return

            logger.error(
                "batch.tx.failed recipient=%s hash=%s reason=%s",
                address,
                tx_hash,
                result.reason,
            )
            attempts = await self._ledger.record_failure(address)
            if self._max_attempts and attempts >= self._max_attempts:
                await self._ledger.dead_letter(
                    address, attempts=attempts, tx_hash=tx_hash, now_ms=self._clock()
                )
                report.dead_lettered += 1
            else:
                report.retained += 1
        except StorageError:
            # Already logged by the store; the entry stays pending.
            logger.error("batch.tx.reconcile_error recipient=%s hash=%s", address, tx_hash)
            report.retained += 1


def _belongs_to(tx: SignedTransaction, result: TxResult) -> bool:
    if result.recipient is not None:
        return result.recipient == tx.recipient
    if result.hash is not None:
        return result.hash == tx.hash
    return True


def match_results(
    txs: List[SignedTransaction], results: List[TxResult]
) -> List[Optional[TxResult]]:
    """
    Pair each transaction with its own outcome, or None when there is none.

    A full-length response is read positionally, but a result naming another
    recipient or hash is never credited to this transaction. A short or long
    response is matched by recipient, then hash; anonymous results are dropped.
    """
    if len(results) == len(txs):
        return [r if _belongs_to(tx, r) else None for tx, r in zip(txs, results)]

    by_recipient = {r.recipient: r for r in results if r.recipient is not None}
    by_hash = {r.hash: r for r in results if r.hash is not None}
    out: List[Optional[TxResult]] = []
    for tx in txs:
        r = by_recipient.get(tx.recipient) or by_hash.get(tx.hash)
        out.append(r if r is not None and _belongs_to(tx, r) else None)
    return out
