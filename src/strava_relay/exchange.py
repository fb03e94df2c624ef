"""Client for Strava's OAuth token endpoint."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx
from pydantic import ValidationError

from .config import Settings
from .errors import UpstreamExchangeFailure
from .schemas import TokenExchangeResponse
from .store import KeyValueStore
from .tokens import TokenRecord, dump_record, record_key

logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.strava.com/api/v3/oauth/token"


def authorization_code_params(settings: Settings, code: str) -> dict[str, str]:
    """Form parameters for the initial authorization-code grant."""
    return {
        "client_id": str(settings.client_id),
        "client_secret": settings.client_secret,
        "code": code,
        "grant_type": "authorization_code",
    }


def refresh_params(settings: Settings, refresh_token: str) -> dict[str, str]:
    """Form parameters for renewing an access token."""
    return {
        "client_id": str(settings.client_id),
        "client_secret": settings.client_secret,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }


class TokenExchangeClient:
    """Trades authorization codes and refresh tokens for token records."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: KeyValueStore,
        token_url: str = TOKEN_URL,
    ) -> None:
        self._http = http
        self._store = store
        self._token_url = token_url

    async def request_token(self, params: Mapping[str, str]) -> TokenExchangeResponse:
        """POST ``params`` to the token endpoint and validate the reply.

        Raises:
            UpstreamExchangeFailure: On transport errors, non-2xx statuses,
                or a body that is not a valid token response.
        """
        grant_type = params.get("grant_type")
        try:
            response = await self._http.post(self._token_url, data=dict(params))
        except httpx.HTTPError as e:
            raise UpstreamExchangeFailure(
                f"Token request ({grant_type}) failed: {e}"
            ) from e

        if response.is_error:
            raise UpstreamExchangeFailure(
                f"Token endpoint returned {response.status_code} "
                f"for {grant_type}: {response.text}",
                status_code=response.status_code,
            )

        try:
            return TokenExchangeResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise UpstreamExchangeFailure(
                f"Malformed token response for {grant_type}: {e}",
                status_code=response.status_code,
            ) from e

    async def save(self, record: TokenRecord) -> None:
        """Persist ``record`` under its athlete's key, replacing any previous one."""
        await self._store.put(record_key(record.athlete_id), dump_record(record))

    async def exchange(
        self,
        params: Mapping[str, str],
        athlete_id: str | None = None,
    ) -> TokenRecord:
        """Exchange credentials for a token record and persist it.

        Args:
            params: Form parameters, see ``authorization_code_params`` and
                ``refresh_params``.
            athlete_id: Known athlete id (refresh path). When None the id is
                read from the athlete object embedded in the response.

        Returns:
            The stored record.
        """
        token = await self.request_token(params)

        if athlete_id is None:
            if token.athlete is None:
                raise UpstreamExchangeFailure(
                    "Token response carries no athlete and no athlete id was given"
                )
            athlete_id = str(token.athlete.id)

        record = TokenRecord(
            athlete_id=athlete_id,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=token.expires_at,
        )
        await self.save(record)
        logger.info(
            "Stored %s token for athlete %s, expires at %s",
            params.get("grant_type"),
            athlete_id,
            record.expires_at,
        )
        return record
