# core/request_validator.py
import logging
import re
from typing import Callable, Final, Optional
from web3 import Web3
from repository.request_ledger import RequestLedger
from util.enums import ErrorMessage
from util.errors import AdmissionError
from util.functions import now_ms

logger = logging.getLogger(__name__)

TWEET_URL_RE: Final[re.Pattern] = re.compile(r"^https://twitter\.com/.*/status/(\d+)")
XE_ADDRESS_RE: Final[re.Pattern] = re.compile(r"\bxe_[0-9a-f]{40}\b", re.IGNORECASE)
_CHECKSUM_SHAPE: Final[re.Pattern] = re.compile(r"^xe_[0-9a-fA-F]{40}$")


def tweet_id(url: object) -> Optional[str]:
    if not isinstance(url, str):
        return None
    match = TWEET_URL_RE.match(url)
    return match.group(1) if match else None


def checksum_address_is_valid(address: str) -> bool:
    """
    Mixed-case checksum over the 40 hex chars after "xe_": a letter must be
    upper case iff the matching nibble of keccak256(lowercase hex) is >= 8.
    """
    if not _CHECKSUM_SHAPE.match(address or ""):
        return False
    body = address[3:]
    digest = bytes(Web3.keccak(text=body.lower())).hex()
    for ch, nibble in zip(body, digest):
        if ch.isdigit():
            continue
        if int(nibble, 16) >= 8:
            if not ch.isupper():
                return False
        elif not ch.islower():
            return False
    return True


def extract_address(text: Optional[str]) -> Optional[str]:
    match = XE_ADDRESS_RE.search(text or "")
    return match.group(0) if match else None


class RequestValidator:
    """
    Decides whether a resolved proof may queue a disbursement, and queues it.

    Order of checks: url shape, proof already claimed, address present and
    checksummed, cooldown. The claim check is repeated, and the cooldown check run,
    under the address lock so concurrent admissions for one address serialize.
    """

    def __init__(
        self,
        ledger: RequestLedger,
        cooldown_ms: int,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._ledger = ledger
        self._cooldown_ms = int(cooldown_ms)
        self._clock = clock

    async def precheck(self, url: object) -> None:
        """The checks that need no proof text; run before paying for a lookup."""
        if tweet_id(url) is None:
            raise AdmissionError(ErrorMessage.MALFORMED_PROOF_URL)
        if await self._ledger.proof_claimed(url):
            raise AdmissionError(ErrorMessage.DUPLICATE_PROOF)

    async def admit(self, url: str, proof_text: Optional[str]) -> str:
        await self.precheck(url)

        address = extract_address(proof_text)
        if not address or not checksum_address_is_valid(address):
            raise AdmissionError(ErrorMessage.NO_VALID_ADDRESS)

        async with self._ledger.address_lock(address):
            if await self._ledger.proof_claimed(url):
                raise AdmissionError(ErrorMessage.DUPLICATE_PROOF)

            now = self._clock()
            last = await self._ledger.last_request_ms(address)
            if last > now - self._cooldown_ms:
                raise AdmissionError(ErrorMessage.COOLDOWN_ACTIVE)

            await self._ledger.enqueue(url, address, now)

        logger.info("admission.accepted address=%s tweet=%s", address, tweet_id(url))
        return address
