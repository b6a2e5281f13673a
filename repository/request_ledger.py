# repository/request_ledger.py
import asyncio
import json
import logging
from typing import List, Optional
from weakref import WeakValueDictionary
from repository.kv_store import KeyValueStore
from repository.namespaces import ATTEMPTS, FAILED, PENDING, REQUESTS, URLS, key

logger = logging.getLogger(__name__)


class RequestLedger:
    """
    Flow:
    - Admission writes url/pending/request for an address in one transaction.
    - The batch processor reads the pending queue, then acknowledges (deletes)
      entries the ledger API accepted, or dead-letters ones it keeps rejecting.
    - url and request entries are never deleted.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    def address_lock(self, address: str) -> asyncio.Lock:
        # Callers hold a strong ref for the duration of `async with`, which keeps
        # the entry alive; idle locks are collected.
        lock = self._locks.get(address)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[address] = lock
        return lock

    # ---------------- Admission ----------------

    async def proof_claimed(self, url: str) -> bool:
        return await self._store.get(key(URLS, url)) is not None

    async def last_request_ms(self, address: str) -> int:
        raw = await self._store.get(key(REQUESTS, address))
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning("ledger.request.unparseable address=%s value=%r", address, raw)
            return 0

    async def enqueue(self, url: str, address: str, now_ms: int) -> None:
        await self._store.set_many(
            {
                key(URLS, url): address,
                key(PENDING, address): address,
                key(REQUESTS, address): str(now_ms),
            }
        )
        logger.info("ledger.enqueued address=%s", address)

    # ---------------- Queue ----------------

    async def pending(self) -> List[str]:
        return [value for _, value in await self._store.scan_by_prefix(PENDING)]

    async def acknowledge(self, address: str, *, admitted_ms: Optional[int] = None) -> bool:
        """
        Drop a disbursed entry. With `admitted_ms` (the request stamp seen when
        the batch was built), an entry re-admitted since then is kept for the
        next cycle; returns False in that case.
        """
        async with self.address_lock(address):
            if admitted_ms is not None:
                current = await self.last_request_ms(address)
                if current != admitted_ms:
                    logger.info(
                        "ledger.ack.superseded address=%s built=%d current=%d",
                        address,
                        admitted_ms,
                        current,
                    )
                    return False
            await self._store.set_many(
                {}, delete=(key(PENDING, address), key(ATTEMPTS, address))
            )
            return True

    async def record_failure(self, address: str) -> int:
        """Bump and return the rejection count for a pending address."""
        raw = await self._store.get(key(ATTEMPTS, address))
        attempts = (int(raw) if raw and raw.isdigit() else 0) + 1
        await self._store.set(key(ATTEMPTS, address), str(attempts))
        return attempts

    async def dead_letter(
        self, address: str, *, attempts: int, tx_hash: Optional[str], now_ms: int
    ) -> None:
        record = json.dumps(
            {"address": address, "attempts": attempts, "hash": tx_hash, "ts": now_ms},
            separators=(",", ":"),
        )
        await self._store.set_many(
            {key(FAILED, address): record},
            delete=(key(PENDING, address), key(ATTEMPTS, address)),
        )
        logger.warning("ledger.dead_lettered address=%s attempts=%d", address, attempts)

    # ---------------- Counters ----------------

    async def pending_count(self) -> int:
        return await self._store.count_by_prefix(PENDING)

    async def request_count(self) -> int:
        return await self._store.count_by_prefix(REQUESTS)

    async def failed_count(self) -> int:
        return await self._store.count_by_prefix(FAILED)
