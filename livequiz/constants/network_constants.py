"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_DATABASE_URL: str = "sqlite:///livequiz.db"
DEFAULT_SECRET_KEY: str = "livequiz-dev-secret"
SESSION_COOKIE_NAME: str = "livequiz_session"

API_PREFIX: str = "/api"
WEBSOCKET_PATH: str = "/api/ws"

# Fan-out: queued messages per listener before it is considered too slow.
LISTENER_QUEUE_SIZE: int = 64

# Client reconciliation timings, in seconds.
POLL_INTERVAL_SECONDS: float = 5.0
RECONNECT_DELAY_SECONDS: float = 3.0
