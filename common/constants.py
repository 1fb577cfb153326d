"""Project-wide constants (default ports, realtime endpoint, sync timings)."""

DEFAULT_SERVER_HOST: str = "localhost"
DEFAULT_SERVER_PORT: int = 8000

REALTIME_PATH: str = "/realtime"

SESSION_KEY_PREFIX: str = "mk_"

RECONNECT_DELAY_SECONDS: float = 1.0
MAX_RECONNECT_DELAY_SECONDS: float = 30.0
SUBSCRIBE_ACK_TIMEOUT_SECONDS: float = 10.0

# 0 disables the periodic reconciliation loop
RECONCILE_INTERVAL_SECONDS: float = 60.0

FAVICON_SERVICE_URL: str = "https://www.google.com/s2/favicons"
FAVICON_SIZE: int = 64

# WebSocket close code used when a topic does not match the session owner
TOPIC_FORBIDDEN_CLOSE_CODE: int = 4403
INVALID_SESSION_CLOSE_CODE: int = 4401
