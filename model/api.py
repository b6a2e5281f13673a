from typing import Any
from pydantic import BaseModel


class DisbursementRequest(BaseModel):
    # Loosely typed: a missing or non-string url is answered with the
    # faucet's own malformedProofUrl rejection, not a schema error.
    url: Any = None


class DisbursementResponse(BaseModel):
    success: bool = True
    message: str = "request queued"


class IndexResponse(BaseModel):
    name: str
    version: str
