# repository/namespaces.py
from typing import Final

# Keys are "<prefix>:<discriminator>" with no root namespace, matching
# stores written by earlier faucet deployments.
SEPARATOR: Final[str] = ":"

URLS: Final[str] = "url"  # proof url -> address, append-only
PENDING: Final[str] = "pending"  # address -> address, the disbursement queue
REQUESTS: Final[str] = "request"  # address -> last admitted request (epoch ms)
ATTEMPTS: Final[str] = "attempts"  # address -> ledger rejections so far
FAILED: Final[str] = "failed"  # address -> dead-letter record (JSON)


def key(prefix: str, discriminator: str) -> str:
    return f"{prefix}{SEPARATOR}{discriminator}"
