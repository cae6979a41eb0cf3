"""
Pydantic schemas for the action request bodies.

Fields are optional at the type level; the pipeline reports missing or empty
required fields itself so callers get a single 400 message.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ActionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class SharePinRequest(ActionRequest):
    image_url: Optional[str] = None
    description: Optional[str] = None
    book_title: Optional[str] = None


class ManualNotificationRequest(ActionRequest):
    recipient_email: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None


class PushNotificationRequest(ManualNotificationRequest):
    data: Optional[dict] = None


class UpdatePushTokenRequest(ActionRequest):
    fcm_token: Optional[str] = None


class UnlockBadgeRequest(ActionRequest):
    target_email: Optional[str] = None
    badge_id: Optional[str] = None


class UserEmailRequest(ActionRequest):
    user_email: Optional[str] = None


class CommentRequest(ActionRequest):
    book_id: Optional[str] = None
    comment: Optional[str] = None


class EntityEvent(ActionRequest):
    type: Optional[str] = None
    entity_name: Optional[str] = None
    entity_id: Optional[str] = None


class EntityEventRequest(ActionRequest):
    """Body the BaaS posts to an entity automation: the event plus the record."""

    event: Optional[EntityEvent] = None
    data: Optional[dict] = None
    old_data: Optional[dict] = None
    payload_too_large: Optional[bool] = None

    def is_event(self, entity_name: str, event_type: str) -> bool:
        return (
            self.event is not None
            and self.event.entity_name == entity_name
            and self.event.type == event_type
        )


class HealthResponse(BaseModel):
    status: str
    missing: list[str] = []
