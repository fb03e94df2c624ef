"""Exceptions raised along the token path."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for relay failures surfaced at the request boundary."""


class UpstreamExchangeFailure(RelayError):
    """The token endpoint was unreachable or answered with something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreAccessFailure(RelayError):
    """Reading from or writing to the key-value store failed."""


class MissingOrMalformedRecord(RelayError):
    """A stored token record is absent or cannot be parsed."""


class NotAuthorized(MissingOrMalformedRecord):
    """No token record exists because the athlete never completed login."""

    def __init__(self, athlete_id: str) -> None:
        super().__init__(
            f"Athlete {athlete_id} has not authorized this application. "
            "Visit /login to connect a Strava account."
        )
        self.athlete_id = athlete_id
