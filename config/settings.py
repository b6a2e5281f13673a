# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment, MetricsMode


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

ONE_DAY_MS = 86_400_000


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    APP_VERSION: str = Field(default="1.0.0", validation_alias="APP_VERSION")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")
    HTTP_PORT: int = Field(default=8000, validation_alias="HTTP_PORT")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(default=".*", validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(default=10, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Metrics
    METRICS_BEARER_TOKEN: str = Field(default="", validation_alias="METRICS_BEARER_TOKEN")
    METRICS_MODE: MetricsMode = Field(
        default=MetricsMode.LEDGER, validation_alias="METRICS_MODE"
    )

    # Faucet requests
    REQUEST_COOLDOWN_MS: int = Field(
        default=ONE_DAY_MS, validation_alias="REQUEST_COOLDOWN_MS"
    )
    REQUEST_AMOUNT: int = Field(default=1_000_000, validation_alias="REQUEST_AMOUNT")
    REQUEST_MEMO: str = Field(
        default="Automated faucet request", validation_alias="REQUEST_MEMO"
    )

    # Batch processing
    REQUEST_PROCESSING_INTERVAL: str = Field(
        default="* * * * *", validation_alias="REQUEST_PROCESSING_INTERVAL"
    )
    PROCESSING_TIMEZONE: str = Field(
        default="Europe/London", validation_alias="PROCESSING_TIMEZONE"
    )
    # 0 keeps a rejected disbursement queued forever
    MAX_DISBURSE_ATTEMPTS: int = Field(
        default=10, ge=0, validation_alias="MAX_DISBURSE_ATTEMPTS"
    )
    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=10.0, gt=0, validation_alias="UPSTREAM_TIMEOUT_SECONDS"
    )

    # External URLS:
    TWITTER_API_URL: str = Field(
        default="https://api.twitter.com/2/tweets", validation_alias="TWITTER_API_URL"
    )
    TWITTER_BEARER_TOKEN: str = Field(default="", validation_alias="TWITTER_BEARER_TOKEN")
    XE_API_URL: str = Field(
        default="https://xe1.test.network", validation_alias="XE_API_URL"
    )

    # Faucet wallet
    XE_WALLET_ADDRESS: str = Field(default="", validation_alias="XE_WALLET_ADDRESS")
    XE_WALLET_PRIVATE_KEY: str = Field(
        default="", validation_alias="XE_WALLET_PRIVATE_KEY"
    )

    # Logging knobs
    LOGGER_NAME: str = "xe-faucet"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="faucet.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
