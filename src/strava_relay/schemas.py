"""Shapes of the payloads Strava sends us."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AthleteSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int


class TokenExchangeResponse(BaseModel):
    """Body of a successful POST to the OAuth token endpoint.

    ``athlete`` is only present on the authorization-code grant.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    expires_at: int
    athlete: AthleteSummary | None = None


class WebhookEvent(BaseModel):
    """Push notification describing a change to an activity or athlete."""

    model_config = ConfigDict(extra="ignore")

    aspect_type: str
    event_time: int
    object_id: int
    object_type: str
    owner_id: int
    subscription_id: int
    updates: dict[str, Any] = Field(default_factory=dict)
