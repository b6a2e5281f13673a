# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class AdmissionError(AppError):
    """A faucet request that was refused; `kind` names the rule that refused it."""

    def __init__(self, error: ErrorMessage) -> None:
        info = error.value
        self.kind = info.kind
        self.message = info.message
        super().__init__(info.message, info.http_status)
        self.detail = {"ok": False, "error": info.kind, "message": info.message}


class StorageError(Exception):
    """A write to the key-value store did not complete."""


class UpstreamError(Exception):
    """The social-media or ledger API failed, timed out or answered garbage."""
