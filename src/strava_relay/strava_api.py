"""Bearer-authenticated calls to the Strava REST API."""

from __future__ import annotations

from typing import Any

import httpx

API_BASE = "https://www.strava.com/api/v3"


def _auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


class StravaApi:
    """Calls the Strava REST API on behalf of an athlete.

    Args:
        http: Shared client used for every outbound request.
        api_base: Root URL of the API, without a trailing slash.
    """

    def __init__(self, http: httpx.AsyncClient, api_base: str = API_BASE) -> None:
        self._http = http
        self._api_base = api_base.rstrip("/")

    async def get_activity(self, access_token: str, activity_id: int) -> dict[str, Any]:
        """Fetch the detailed representation of an activity.

        Raises:
            httpx.HTTPStatusError: If Strava answers with an error status.
        """
        response = await self._http.get(
            f"{self._api_base}/activities/{activity_id}",
            params={"include_all_efforts": "false"},
            headers=_auth_headers(access_token),
        )
        response.raise_for_status()
        return response.json()

    async def update_activity(
        self, access_token: str, activity_id: int, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply ``updates`` (name, sport_type, commute, gear_id, ...) to an activity."""
        response = await self._http.put(
            f"{self._api_base}/activities/{activity_id}",
            json=updates,
            headers=_auth_headers(access_token),
        )
        response.raise_for_status()
        return response.json()

    async def get_athlete(self, access_token: str) -> httpx.Response:
        """Fetch the authenticated athlete's profile.

        The raw response is returned so callers can pass Strava's status and
        body through untouched.
        """
        return await self._http.get(
            f"{self._api_base}/athlete",
            headers=_auth_headers(access_token),
        )
