# controller/controller_dependencies.py
import secrets
from fastapi import Header, HTTPException
from config.settings import settings
from core.batch_processor import BatchProcessor
from core.request_validator import RequestValidator
from repository.kv_store import KeyValueStore
from repository.request_ledger import RequestLedger
from service.faucet_service import FaucetService, RequestTally
from service.twitter_service import TwitterService
from service.xe_ledger_service import XeLedgerService
from util.enums import ErrorMessage
from util.functions import bearer_token

# One ledger per process: its per-address locks only serialize admissions
# that share the instance.
_ledger = RequestLedger(KeyValueStore())
_tally = RequestTally()
_processor = BatchProcessor(
    _ledger,
    XeLedgerService(),
    faucet_address=settings.XE_WALLET_ADDRESS,
    private_key=settings.XE_WALLET_PRIVATE_KEY,
    amount=settings.REQUEST_AMOUNT,
    memo=settings.REQUEST_MEMO,
    max_attempts=settings.MAX_DISBURSE_ATTEMPTS,
)


def get_request_tally() -> RequestTally:
    return _tally


def get_batch_processor() -> BatchProcessor:
    return _processor


def get_faucet_service() -> FaucetService:
    validator = RequestValidator(_ledger, settings.REQUEST_COOLDOWN_MS)
    return FaucetService(_ledger, validator, TwitterService(), _tally)


async def require_metrics_token(authorization: str | None = Header(default=None)) -> None:
    token = bearer_token(authorization)
    expected = settings.METRICS_BEARER_TOKEN
    if not token or not expected or not secrets.compare_digest(token, expected):
        info = ErrorMessage.FORBIDDEN.value
        raise HTTPException(
            status_code=info.http_status,
            detail={"ok": False, "error": info.kind, "message": info.message},
        )
