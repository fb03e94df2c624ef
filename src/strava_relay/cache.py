"""Hands out valid access tokens, refreshing them through Strava when needed."""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Callable

from .config import Settings
from .errors import NotAuthorized
from .exchange import TokenExchangeClient, refresh_params
from .store import KeyValueStore
from .tokens import (
    EXPIRY_MARGIN_SECONDS,
    TokenRecord,
    is_token_expiring,
    load_record,
    record_key,
)

logger = logging.getLogger(__name__)


class TokenCacheManager:
    """Returns access tokens with at least a minute of validity left.

    Refreshes for the same athlete are serialized within this process, so
    concurrent requests that find an expiring token trigger a single exchange.
    Separate processes sharing a store can still race; the store keeps the
    last write.
    """

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        exchange_client: TokenExchangeClient,
        clock: Callable[[], float] = time.time,
        margin: int = EXPIRY_MARGIN_SECONDS,
    ) -> None:
        self._settings = settings
        self._store = store
        self._exchange = exchange_client
        self._clock = clock
        self._margin = margin
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, athlete_id: str) -> asyncio.Lock:
        lock = self._locks.get(athlete_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[athlete_id] = lock
        return lock

    async def _load(self, athlete_id: str) -> TokenRecord:
        raw = await self._store.get(record_key(athlete_id))
        if raw is None:
            raise NotAuthorized(athlete_id)
        return load_record(raw)

    def _is_fresh(self, record: TokenRecord) -> bool:
        return not is_token_expiring(record, now=self._clock(), margin=self._margin)

    async def get_access_token(self, athlete_id: str | int) -> str:
        """Return a usable access token for ``athlete_id``.

        Raises:
            NotAuthorized: If the athlete never completed the login flow.
            MissingOrMalformedRecord: If the stored record cannot be parsed.
            UpstreamExchangeFailure: If the refresh call fails.
            StoreAccessFailure: If the store cannot be read or written.
        """
        athlete_id = str(athlete_id)
        record = await self._load(athlete_id)
        if self._is_fresh(record):
            return record.access_token

        lock = self._lock_for(athlete_id)
        async with lock:
            # Another request may have refreshed while we waited.
            record = await self._load(athlete_id)
            if self._is_fresh(record):
                return record.access_token

            logger.info(
                "Refreshing token for athlete %s (expired at %s)",
                athlete_id,
                record.expires_at,
            )
            refreshed = await self._exchange.exchange(
                refresh_params(self._settings, record.refresh_token),
                athlete_id=athlete_id,
            )
        return refreshed.access_token
