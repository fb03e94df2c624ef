"""Decides how an activity reported by the webhook should be corrected."""

from __future__ import annotations

from typing import Any, Protocol

from .schemas import WebhookEvent

# Events worth fetching the activity for; deletes and athlete
# deauthorizations carry nothing to correct.
ACTIONABLE_ASPECTS = frozenset({"create", "update"})


class ActivityClassifier(Protocol):
    def __call__(
        self, event: WebhookEvent, activity: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Return the fields to update on the activity, or None to leave it."""
        ...


class NoChangeClassifier:
    """Leaves every activity as uploaded."""

    def __call__(
        self, event: WebhookEvent, activity: dict[str, Any]
    ) -> dict[str, Any] | None:
        return None


def is_actionable(event: WebhookEvent) -> bool:
    """Check whether an event refers to an activity that may need correcting.

    Args:
        event: Validated webhook payload.

    Returns:
        True for activity create and update events, False otherwise.
    """
    return event.object_type == "activity" and event.aspect_type in ACTIONABLE_ASPECTS
