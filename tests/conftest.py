"""Pytest fixtures for strava-relay tests."""

import json
import time
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from strava_relay.config import Settings
from strava_relay.store import InMemoryStore
from strava_relay.tokens import TokenRecord, dump_record, record_key

TOKEN_PATH = "/api/v3/oauth/token"


class FakeStrava:
    """Stands in for Strava's OAuth and REST endpoints."""

    def __init__(self):
        self.requests = []
        self.token_status = 200
        self.token_body = {
            "token_type": "Bearer",
            "expires_at": int(time.time()) + 21600,
            "expires_in": 21600,
            "refresh_token": "new_refresh_token",
            "access_token": "new_access_token",
            "athlete": {"id": 42, "firstname": "Test", "lastname": "User"},
        }
        self.activity = {
            "id": 9876543210,
            "name": "Morning Ride",
            "sport_type": "Ride",
            "commute": False,
        }
        self.athlete = {"id": 42, "firstname": "Test", "lastname": "User"}
        self.athlete_status = 200
        self.activity_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == TOKEN_PATH and request.method == "POST":
            return httpx.Response(self.token_status, json=self.token_body)
        if path == "/api/v3/athlete":
            return httpx.Response(self.athlete_status, json=self.athlete)
        if path.startswith("/api/v3/activities/"):
            if request.method == "PUT":
                updated = {**self.activity, **json.loads(request.content)}
                return httpx.Response(200, json=updated)
            if self.activity_status != 200:
                return httpx.Response(
                    self.activity_status, json={"message": "Record Not Found"}
                )
            return httpx.Response(200, json=self.activity)
        return httpx.Response(404)

    @property
    def token_requests(self):
        return [r for r in self.requests if r.url.path == TOKEN_PATH]

    def form(self, request: httpx.Request) -> dict:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def settings():
    """Return settings for a test OAuth application."""
    return Settings(
        client_id=12345,
        client_secret="test_client_secret",
        redirect_uri="http://test/oauth_redirect",
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_strava():
    return FakeStrava()


@pytest_asyncio.fixture
async def http_client(fake_strava):
    """Return an HTTP client routed to the fake Strava."""
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake_strava.handler)
    ) as client:
        yield client


@pytest.fixture
def valid_record():
    """Return a record with hours of validity left."""
    return TokenRecord(
        athlete_id="42",
        access_token="test_access_token_12345",
        refresh_token="test_refresh_token_67890",
        expires_at=int(time.time()) + 6 * 3600,
    )


@pytest.fixture
def expired_record():
    """Return a record that expired an hour ago."""
    return TokenRecord(
        athlete_id="42",
        access_token="expired_access_token",
        refresh_token="test_refresh_token_67890",
        expires_at=int(time.time()) - 3600,
    )


@pytest.fixture
def save_record(store):
    """Return a coroutine function that writes a record into the store."""

    async def _save(record):
        await store.put(record_key(record.athlete_id), dump_record(record))

    return _save
