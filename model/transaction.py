from pydantic import BaseModel, ConfigDict


class TxData(BaseModel):
    memo: str


class Transaction(BaseModel):
    # Field order is the signing order; do not reorder.
    timestamp: int
    sender: str
    recipient: str
    amount: int
    data: TxData
    nonce: int


class SignedTransaction(Transaction):
    signature: str
    hash: str


class TxResult(BaseModel):
    """One entry of the ledger's per-transaction batch response."""

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    hash: str | None = None
    recipient: str | None = None
    reason: str | None = None


class CycleReport(BaseModel):
    skipped: bool = False
    submitted: int = 0
    disbursed: int = 0
    retained: int = 0
    dead_lettered: int = 0
