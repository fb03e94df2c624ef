"""Runtime configuration for the relay.

Values come from the environment (optionally seeded from a ``.env`` file) and
are bundled into an immutable ``Settings`` object that is passed explicitly to
every component that needs it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_REDIRECT_URI = "http://127.0.0.1:5050/oauth_redirect"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5050
DEFAULT_HTTP_TIMEOUT = 20.0


@dataclass(frozen=True)
class Settings:
    """OAuth application credentials and server options."""

    client_id: int
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    webhook_verify_token: str | None = None
    store_dir: Path | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    log_level: str = "INFO"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"{name} environment variable not set")
    return value


def _as_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def load_settings() -> Settings:
    """Build settings from the environment.

    Raises:
        ValueError: If a required variable is missing or not a valid number.
    """
    load_dotenv(override=False)

    store_dir = os.getenv("STRAVA_RELAY_STORE_DIR")
    timeout = os.getenv("STRAVA_RELAY_HTTP_TIMEOUT")
    try:
        http_timeout = float(timeout) if timeout else DEFAULT_HTTP_TIMEOUT
    except ValueError:
        raise ValueError(
            f"STRAVA_RELAY_HTTP_TIMEOUT must be a number, got {timeout!r}"
        ) from None

    return Settings(
        client_id=_as_int("STRAVA_CLIENT_ID", _require("STRAVA_CLIENT_ID")),
        client_secret=_require("STRAVA_CLIENT_SECRET"),
        redirect_uri=os.getenv("STRAVA_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
        webhook_verify_token=os.getenv("STRAVA_WEBHOOK_VERIFY_TOKEN") or None,
        store_dir=Path(store_dir) if store_dir else None,
        host=os.getenv("STRAVA_RELAY_HOST") or DEFAULT_HOST,
        port=_as_int(
            "STRAVA_RELAY_PORT", os.getenv("STRAVA_RELAY_PORT") or str(DEFAULT_PORT)
        ),
        http_timeout=http_timeout,
        log_level=os.getenv("LOG_LEVEL") or "INFO",
    )
