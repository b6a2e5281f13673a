class InternalURIs:
    INDEX = "/"
    HEALTHZ = "/healthz"
    METRICS = "/metrics"
    REQUEST = "/request"


SERVICE_NAME = "xe faucet"
