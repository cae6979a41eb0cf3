"""
Entity automations: actions the BaaS calls with an `EntityEventRequest`
after a record is created or updated.

Events for another entity or event type are acknowledged and skipped.
"""

from __future__ import annotations

import logging
from typing import List

from gateway.errors import InvalidInput
from gateway.pipeline import Action, ActionContext
from gateway.schemas import EntityEventRequest

logger = logging.getLogger(__name__)

ACTIVITY_FEED_KIND = "ActivityFeed"
NOTIFICATION_KIND = "Notification"

FRIENDSHIP_ACCEPTED = "Acceptée"
MILESTONES = (10, 25, 50, 100, 200, 500)
REVIEW_EXCERPT_LENGTH = 150


def truncate(text, limit: int) -> str:
    if not text:
        return ""
    return text[: limit - 1] + "…" if len(text) > limit else text


def _activity(user_book: dict, activity_type: str, **fields) -> dict:
    return {
        "activity_type": activity_type,
        "book_id": user_book.get("book_id"),
        "user_book_id": user_book.get("id"),
        "created_by": user_book.get("created_by"),
        "is_visible": True,
        "likes": [],
        "comments_count": 0,
        **fields,
    }


def _review_excerpt(user_book: dict):
    review = user_book.get("review")
    return review[:REVIEW_EXCERPT_LENGTH] if review else None


def activities_for_update(user_book: dict, previous: dict) -> List[dict]:
    """Feed entries implied by one UserBook update, milestones excluded."""
    status = user_book.get("status")
    rating = user_book.get("rating")
    activities = []
    if status == "Lu" and previous.get("status") != "Lu":
        activities.append(
            _activity(
                user_book,
                "book_finished",
                rating=rating or None,
                review_excerpt=_review_excerpt(user_book),
            )
        )
    if status == "En cours" and previous.get("status") != "En cours":
        activities.append(_activity(user_book, "book_started"))
    if rating and rating != previous.get("rating"):
        activities.append(
            _activity(
                user_book,
                "book_rated",
                rating=rating,
                review_excerpt=_review_excerpt(user_book),
            )
        )
    return activities


def generate_activity_feed(ctx: ActionContext) -> dict:
    event: EntityEventRequest = ctx.payload
    if event.event is None or event.event.entity_name != "UserBook" or not event.data:
        return {"message": "Not a UserBook event"}
    if event.event.type != "update":
        return {"message": "Activity generated", "activities": []}

    user_book = event.data
    previous = event.old_data or {}
    activities = activities_for_update(user_book, previous)

    just_finished = user_book.get("status") == "Lu" and previous.get("status") != "Lu"
    if just_finished:
        finished = ctx.baas.filter_privileged(
            "UserBook", {"created_by": user_book.get("created_by"), "status": "Lu"}
        )
        if len(finished) in MILESTONES:
            activities.append(
                {
                    "activity_type": "milestone_reached",
                    "milestone_type": f"{len(finished)}_books",
                    "created_by": user_book.get("created_by"),
                    "is_visible": True,
                    "likes": [],
                    "comments_count": 0,
                }
            )

    for activity in activities:
        ctx.baas.create_privileged(ACTIVITY_FEED_KIND, activity)
    return {
        "message": "Activity generated",
        "activities": [activity["activity_type"] for activity in activities],
    }


def notify_on_suggestion(ctx: ActionContext) -> dict:
    """Tells every admin about a new idea-wall suggestion."""
    event: EntityEventRequest = ctx.payload
    if not event.is_event("Suggestion", "create"):
        return {"skipped": True}

    suggestion = event.data or {}
    author = suggestion.get("created_by")
    preview = truncate(
        suggestion.get("title") or suggestion.get("message") or suggestion.get("content"),
        80,
    )
    by = f" par {author}" if author else ""
    message = (
        f'Un nouveau message a été ajouté{by}: "{preview}"'
        if preview
        else f"Un nouveau message a été ajouté{by}."
    )

    admins = ctx.baas.filter_privileged("User", {"role": "admin"})
    for admin in admins:
        notification = {
            "type": "suggestion",
            "title": "Nouveau message - Mur des idées",
            "message": message,
            "link_type": "suggestion",
            "link_id": event.event.entity_id,
            "recipient_email": admin.get("email"),
        }
        if author:
            notification["from_user"] = author
        ctx.baas.create_privileged(NOTIFICATION_KIND, notification)
    return {"notified": len(admins)}


def _are_friends(ctx: ActionContext, a, b) -> bool:
    """Accepted friendship in either direction."""
    if not a or not b:
        return False
    for owner, friend in ((a, b), (b, a)):
        if ctx.baas.filter_privileged(
            "Friendship",
            {"created_by": owner, "friend_email": friend, "status": FRIENDSHIP_ACCEPTED},
        ):
            return True
    return False


def notify_on_shared_reading_message(ctx: ActionContext) -> dict:
    """Notifies the sender's friends among a shared reading's participants."""
    event: EntityEventRequest = ctx.payload
    if not event.is_event("SharedReadingMessage", "create"):
        return {"skipped": True}

    message = event.data or {}
    sender = message.get("created_by")
    shared_reading_id = message.get("shared_reading_id")
    if not shared_reading_id:
        raise InvalidInput("shared_reading_id is required")

    matches = ctx.baas.filter_privileged("SharedReading", {"id": shared_reading_id})
    shared_reading = matches[0] if matches else {}
    participants = shared_reading.get("participants") or []
    title = shared_reading.get("title") or "Lecture commune"

    preview = truncate(message.get("message"), 100)
    who = sender or "Une amie"
    text = f'{who}: "{preview}"' if preview else f"{who} a envoyé un message"

    created = 0
    for recipient in participants:
        if not recipient or recipient == sender:
            continue
        if not _are_friends(ctx, sender, recipient):
            continue
        notification = {
            "type": "shared_reading_update",
            "title": f"{title} · Nouveau message",
            "message": text,
            "link_type": "shared_reading",
            "link_id": shared_reading_id,
            "recipient_email": recipient,
        }
        if sender:
            notification["from_user"] = sender
        record = ctx.baas.create_privileged(NOTIFICATION_KIND, notification)
        if record and record.get("id"):
            created += 1

    logger.info("Shared reading %s: %d notifications", shared_reading_id, created)
    return {"created": created}


GENERATE_ACTIVITY_FEED = Action(
    name="generateActivityFeed",
    handler=generate_activity_feed,
    request_model=EntityEventRequest,
)
NOTIFY_ON_SUGGESTION = Action(
    name="notifyOnSuggestion",
    handler=notify_on_suggestion,
    request_model=EntityEventRequest,
)
NOTIFY_ON_SHARED_READING_MESSAGE = Action(
    name="notifyOnSharedReadingMessage",
    handler=notify_on_shared_reading_message,
    request_model=EntityEventRequest,
)

HOOKS = (
    GENERATE_ACTIVITY_FEED,
    NOTIFY_ON_SUGGESTION,
    NOTIFY_ON_SHARED_READING_MESSAGE,
)
