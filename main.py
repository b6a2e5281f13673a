# main.py
import asyncio
import logging
from fastapi_limiter import FastAPILimiter
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from util.errors import AdmissionError
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.cache import close_redis, get_redis, redis_healthy
from controller.controller_dependencies import get_batch_processor, get_request_tally
from core.scheduler import build_scheduler
from fastapi.responses import JSONResponse
from util.constants import InternalURIs
from util.logger import init_logger

logger = logging.getLogger(__name__)


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    # Stray task failures end up here instead of killing the process.
    logger.error(
        "loop.unhandled message=%s",
        context.get("message"),
        exc_info=context.get("exception"),
    )


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    scheduler = None
    try:
        init_logger()
        print(f"{Color.GREEN}Initializing...{Color.RESET}")
        asyncio.get_running_loop().set_exception_handler(_log_unhandled)
        redis = await get_redis()
        await FastAPILimiter.init(redis, identifier=_real_ip)
        scheduler = build_scheduler(get_batch_processor())
        scheduler.start()
        print(f"{Color.BLUE}XE Faucet v{settings.APP_VERSION} Started{Color.RESET}")
    except Exception as e:
        print("Failed to start faucet:", e)
        raise

    try:
        yield
    finally:
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
        try:
            await close_redis()
        except Exception as e:
            print("Error closing Redis:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.ALLOWED_ORIGIN,
    allow_methods=["GET", "POST"],  # Allowed HTTP Methods
    allow_headers=["Authorization", "Content-Type", "Accept"],  # Allowed HTTP Headers
)


@app.middleware("http")
async def log_request(request: Request, call_next):
    get_request_tally().increment()
    logger.info(
        "http.request method=%s path=%s http=%s remote=%s ua=%s",
        request.method,
        request.url.path,
        request.scope.get("http_version"),
        request.client.host if request.client else "unknown",
        request.headers.get("user-agent"),
    )
    return await call_next(request)


@app.get(InternalURIs.HEALTHZ)
async def healthz():
    return {"ok": await redis_healthy()}


@app.exception_handler(AdmissionError)
async def admission_error_handler(request: Request, exc: AdmissionError):
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="0.0.0.0", port=settings.HTTP_PORT, reload=reload)
