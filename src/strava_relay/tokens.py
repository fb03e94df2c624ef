"""Token records and their stored representation.

A token record is kept per athlete as a flat JSON object under the key
``athletes/<athlete_id>``. Only the four record fields are ever written.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from typing import Any

from .errors import MissingOrMalformedRecord

KEY_PREFIX = "athletes/"

# Tokens this close to expiry are treated as already expired.
EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class TokenRecord:
    """Credential state for one athlete."""

    athlete_id: str
    access_token: str
    refresh_token: str
    expires_at: int


def record_key(athlete_id: str | int) -> str:
    """Return the store key for an athlete's token record."""
    return f"{KEY_PREFIX}{athlete_id}"


def dump_record(record: TokenRecord) -> str:
    """Serialize a token record for storage."""
    return json.dumps(asdict(record))


def load_record(raw: str | None) -> TokenRecord:
    """Parse a stored token record.

    Args:
        raw: The value read from the store, or None if the key was absent.

    Returns:
        The parsed record.

    Raises:
        MissingOrMalformedRecord: If the value is absent, not JSON, or does
            not carry all four fields with the expected types.
    """
    if raw is None:
        raise MissingOrMalformedRecord("No token record stored")

    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MissingOrMalformedRecord(f"Stored token record is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise MissingOrMalformedRecord("Stored token record is not a JSON object")

    for field, expected in (
        ("athlete_id", str),
        ("access_token", str),
        ("refresh_token", str),
    ):
        value = data.get(field)
        if not isinstance(value, expected) or not value:
            raise MissingOrMalformedRecord(f"Stored token record has no valid {field}")

    expires_at = data.get("expires_at")
    # bool is an int subclass but never a timestamp
    if not isinstance(expires_at, int) or isinstance(expires_at, bool):
        raise MissingOrMalformedRecord("Stored token record has no valid expires_at")

    return TokenRecord(
        athlete_id=data["athlete_id"],
        access_token=data["access_token"],
        refresh_token=data["refresh_token"],
        expires_at=expires_at,
    )


def is_token_expiring(
    record: TokenRecord,
    now: float | None = None,
    margin: int = EXPIRY_MARGIN_SECONDS,
) -> bool:
    """Check whether the access token is expired or expires within ``margin``.

    Args:
        record: Token record with an absolute ``expires_at`` timestamp.
        now: Current Unix time; defaults to ``time.time()``.
        margin: Seconds of remaining validity required.

    Returns:
        True if the token must be refreshed before use, False otherwise.
    """
    if now is None:
        now = time.time()
    return record.expires_at <= now + margin
