# controller/faucet_controller.py
from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from model.api import DisbursementRequest, DisbursementResponse, IndexResponse
from service.faucet_service import FaucetService
from util.constants import InternalURIs, SERVICE_NAME
from controller.controller_dependencies import get_faucet_service, require_metrics_token

faucet_router = APIRouter()

request_rate_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)


@faucet_router.get(InternalURIs.INDEX, response_model=IndexResponse)
async def get_index() -> IndexResponse:
    return IndexResponse(name=SERVICE_NAME, version=settings.APP_VERSION)


@faucet_router.get(
    InternalURIs.METRICS,
    response_class=PlainTextResponse,
    dependencies=[Depends(require_metrics_token)],
)
async def get_metrics(service: FaucetService = Depends(get_faucet_service)) -> str:
    return await service.metrics(settings.METRICS_MODE)


@faucet_router.post(
    InternalURIs.REQUEST,
    response_model=DisbursementResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(request_rate_limiter)],
)
async def post_request(
    payload: DisbursementRequest,
    service: FaucetService = Depends(get_faucet_service),
) -> DisbursementResponse:
    await service.request_disbursement(payload.url)
    return DisbursementResponse()
