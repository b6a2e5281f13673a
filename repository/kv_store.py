# repository/kv_store.py
import logging
import re
from typing import Dict, List, Optional, Tuple
from redis.asyncio import Redis
from redis.exceptions import RedisError
from config.cache import get_redis
from repository.namespaces import SEPARATOR
from util.errors import StorageError

logger = logging.getLogger(__name__)

KeyValue = Tuple[str, str]

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")
_SCAN_BATCH = 500


class KeyValueStore:
    """
    String -> string store over Redis, scanned by the first ":" segment of a key.

    Failure policy:
    - reads fail open: a Redis error is logged and reported as "absent" / empty.
    - writes fail loud: a Redis error is logged and re-raised as StorageError.
    """

    def __init__(self, client: Optional[Redis] = None) -> None:
        self._redis = client

    async def _client(self) -> Redis:
        if self._redis is not None:
            return self._redis
        return await get_redis()

    @staticmethod
    def _match(prefix: str) -> str:
        return _GLOB_SPECIAL.sub(r"\\\1", prefix) + SEPARATOR + "*"

    # ---------------- Reads ----------------

    async def get(self, key: str) -> Optional[str]:
        try:
            r = await self._client()
            return await r.get(key)
        except (RedisError, OSError) as e:
            logger.error("store.get.error key=%s err=%s", key, type(e).__name__)
            return None

    async def _keys(self, prefix: str) -> List[str]:
        r = await self._client()
        out = [k async for k in r.scan_iter(match=self._match(prefix), count=_SCAN_BATCH)]
        # SCAN may repeat a key while the keyspace is rehashing
        return sorted(set(out))

    async def scan_by_prefix(self, prefix: str) -> List[KeyValue]:
        try:
            keys = await self._keys(prefix)
            if not keys:
                return []
            r = await self._client()
            values: List[Optional[str]] = []
            for i in range(0, len(keys), _SCAN_BATCH):
                values.extend(await r.mget(keys[i : i + _SCAN_BATCH]))
        except (RedisError, OSError) as e:
            logger.error("store.scan.error prefix=%s err=%s", prefix, type(e).__name__)
            return []
        # A key deleted between SCAN and MGET comes back as None
        return [(k, v) for k, v in zip(keys, values) if v is not None]

    async def count_by_prefix(self, prefix: str) -> int:
        try:
            return len(await self._keys(prefix))
        except (RedisError, OSError) as e:
            logger.error("store.count.error prefix=%s err=%s", prefix, type(e).__name__)
            return 0

    # ---------------- Writes ----------------

    async def set(self, key: str, value: str) -> None:
        try:
            r = await self._client()
            await r.set(key, value)
        except (RedisError, OSError) as e:
            logger.error("store.set.error key=%s err=%s", key, type(e).__name__)
            raise StorageError(f"set {key} failed") from e

    async def set_many(
        self, mapping: Dict[str, str], *, delete: Tuple[str, ...] = ()
    ) -> None:
        """
        Apply every write (and optional delete) in one MULTI/EXEC block:
        either all of them land or none do.
        """
        try:
            r = await self._client()
            async with r.pipeline(transaction=True) as pipe:
                for k, v in mapping.items():
                    pipe.set(k, v)
                if delete:
                    pipe.delete(*delete)
                await pipe.execute()
        except (RedisError, OSError) as e:
            logger.error(
                "store.set_many.error keys=%s err=%s",
                ",".join(list(mapping) + list(delete)),
                type(e).__name__,
            )
            raise StorageError("transactional write failed") from e

    async def delete(self, key: str) -> None:
        try:
            r = await self._client()
            await r.delete(key)
        except (RedisError, OSError) as e:
            logger.error("store.delete.error key=%s err=%s", key, type(e).__name__)
            raise StorageError(f"delete {key} failed") from e
