# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    BLUE = "\033[34m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class MetricsMode(str, Enum):
    LEDGER = "ledger"
    TALLY = "tally"


class ErrorInfo(NamedTuple):
    kind: str
    message: str
    http_status: int


class ErrorMessage(Enum):
    MALFORMED_PROOF_URL = ErrorInfo(
        "malformedProofUrl", "invalid request url", status.HTTP_400_BAD_REQUEST
    )
    DUPLICATE_PROOF = ErrorInfo(
        "duplicateProof", "url already processed", status.HTTP_400_BAD_REQUEST
    )
    NO_VALID_ADDRESS = ErrorInfo(
        "noValidAddress",
        "tweet does not contain valid xe address",
        status.HTTP_400_BAD_REQUEST,
    )
    COOLDOWN_ACTIVE = ErrorInfo(
        "cooldownActive",
        "request for address received recently",
        status.HTTP_400_BAD_REQUEST,
    )
    PROOF_UNAVAILABLE = ErrorInfo(
        "proofUnavailable",
        "tweet could not be retrieved",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    STORAGE_UNAVAILABLE = ErrorInfo(
        "storageUnavailable",
        "request could not be stored",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    FORBIDDEN = ErrorInfo("forbidden", "forbidden", status.HTTP_403_FORBIDDEN)
