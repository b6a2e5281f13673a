# service/xe_ledger_service.py
import hashlib
import json
import logging
from typing import Any, List, Optional
import httpx
from eth_keys import keys
from config.settings import settings
from model.transaction import SignedTransaction, Transaction, TxResult
from util.errors import UpstreamError
from util.timing import timed

logger = logging.getLogger(__name__)


def _canonical(obj: dict) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


class XeLedgerService:
    """
    Thin client for the XE blockchain API: wallet nonce lookup, local signing,
    and batch submission. Every network call is bounded by `timeout`.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        api_url = api_url or settings.XE_API_URL
        timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS
        self._url = api_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self._transport = transport

    async def _request(self, method: str, path: str, **kw: Any) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                res = await client.request(method, f"{self._url}{path}", **kw)
                res.raise_for_status()
                return res.json()
        except httpx.HTTPStatusError as e:
            logger.error("xe.bad_status path=%s status=%d", path, e.response.status_code)
            raise UpstreamError(f"{method} {path} returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error("xe.request_error path=%s err=%s", path, type(e).__name__)
            raise UpstreamError(f"{method} {path} failed") from e
        except ValueError as e:
            logger.error("xe.invalid_json path=%s", path)
            raise UpstreamError(f"{method} {path} returned invalid json") from e

    async def get_account_nonce(self, address: str) -> int:
        """Next nonce the ledger will accept from `address`."""
        info = await self._request("GET", f"/wallet/{address}")
        try:
            return int(info["nonce"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"wallet info for {address} has no nonce") from e

    @staticmethod
    def sign_transaction(tx: Transaction, private_key: str) -> SignedTransaction:
        """
        secp256k1 signature (r||s||v hex) over sha256 of the compact JSON of the
        unsigned transaction; the hash covers the transaction plus signature.
        """
        unsigned = tx.model_dump()
        digest = hashlib.sha256(_canonical(unsigned)).digest()
        key = keys.PrivateKey(bytes.fromhex(private_key.removeprefix("0x")))
        signature = key.sign_msg_hash(digest).to_bytes().hex()
        tx_hash = hashlib.sha256(_canonical({**unsigned, "signature": signature})).hexdigest()
        return SignedTransaction(**unsigned, signature=signature, hash=tx_hash)

    async def submit_batch(self, txs: List[SignedTransaction]) -> List[TxResult]:
        """
        POST all transactions in one call. Results are order-correlated with
        `txs`; a response without a results list is an upstream failure.
        """
        with timed(logger, "xe.submit", txs=len(txs)):
            body = await self._request(
                "POST", "/transaction", json=[t.model_dump() for t in txs]
            )
        results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(results, list):
            raise UpstreamError("batch response has no results")
        return [TxResult.model_validate(r) for r in results]
