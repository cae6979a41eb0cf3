"""
Action bodies. Authentication, authorization and body validation are done by
`gateway.pipeline` before any of these run.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from gateway import backups, reminders
from gateway.board import pin_image_url, pin_url
from gateway.errors import NotFound
from gateway.hooks import FRIENDSHIP_ACCEPTED, HOOKS, NOTIFICATION_KIND
from gateway.pipeline import Action, ActionContext
from gateway.schemas import (
    CommentRequest,
    ManualNotificationRequest,
    PushNotificationRequest,
    SharePinRequest,
    UnlockBadgeRequest,
    UpdatePushTokenRequest,
    UserEmailRequest,
)

logger = logging.getLogger(__name__)

FAN_ART_KIND = "FanArt"
USER_BADGE_KIND = "UserBadge"
USER_KIND = "User"

PUSH_FUNCTION_NAME = "sendFCMNotification"


def fan_art_from_pin(pin: dict) -> dict:
    """Maps a Pinterest pin to the fields of a FanArt entity."""
    return {
        "image_url": pin_image_url(pin),
        "note": pin.get("description") or f"Imported from Pinterest: {pin.get('url')}",
        "source_url": pin_url(pin.get("id")),
        "artist_name": "Pinterest",
    }


def import_pinterest_pins(ctx: ActionContext) -> dict:
    """
    Imports the caller's pins as FanArt entities.

    Pins are created one at a time. A pin that fails to import is logged and
    skipped; the response reports how many of the fetched pins made it.
    """
    board = ctx.require_board()
    pins = board.list_pins()

    imported = []
    for pin in pins:
        try:
            imported.append(ctx.baas.create(FAN_ART_KIND, fan_art_from_pin(pin)))
        except Exception as e:
            logger.warning("Skipped pin %s: %s", pin.get("id"), e)

    logger.info(
        "Imported %d/%d pins for %s", len(imported), len(pins), ctx.principal.email
    )
    return {"imported": len(imported), "total": len(pins), "items": imported}


def share_fan_art_to_pinterest(ctx: ActionContext) -> dict:
    payload: SharePinRequest = ctx.payload
    board = ctx.require_board()

    note = payload.description or (
        f"{payload.book_title or 'Fan Art'} - Shared from {ctx.settings.app_name}"
    )
    result = board.create_pin(
        board=ctx.settings.pinterest_board_name,
        note=note,
        image_url=payload.image_url,
        link=ctx.settings.share_link,
    )
    return {"pin_url": pin_url(result["id"]), "pin_id": result["id"]}


def send_manual_notification(ctx: ActionContext) -> dict:
    payload: ManualNotificationRequest = ctx.payload
    result = ctx.baas.invoke(
        PUSH_FUNCTION_NAME,
        {
            "recipient_email": payload.recipient_email,
            "title": payload.title,
            "body": payload.body,
            "data": {"type": "manual", "from_admin": ctx.principal.email},
        },
    )
    return {"message": "Manual notification sent successfully", "result": result}


def send_fcm_notification(ctx: ActionContext) -> dict:
    payload: PushNotificationRequest = ctx.payload

    recipient = next(
        (
            user
            for user in ctx.baas.list_privileged(USER_KIND)
            if user.get("email") == payload.recipient_email
        ),
        None,
    )
    if not recipient or not recipient.get("fcm_token"):
        raise NotFound("Recipient not found or has no FCM token")

    push = ctx.require_push()
    response = push.send(
        device_token=recipient["fcm_token"],
        title=payload.title,
        body=payload.body,
        data=payload.data,
    )
    return {"message": "Notification sent successfully", "fcm_response": response}


def update_fcm_token(ctx: ActionContext) -> dict:
    payload: UpdatePushTokenRequest = ctx.payload
    ctx.baas.update_me({"fcm_token": payload.fcm_token})
    return {"message": "FCM token updated successfully"}


def unlock_badge_for_user(ctx: ActionContext) -> dict:
    # Written with the service credential so the badge belongs to the target.
    payload: UnlockBadgeRequest = ctx.payload
    badge = ctx.baas.create_privileged(
        USER_BADGE_KIND,
        {
            "badge_id": payload.badge_id,
            "unlocked_at": datetime.now(timezone.utc).isoformat(),
            "created_by": payload.target_email,
        },
    )
    logger.info(
        "%s unlocked badge %s for %s",
        ctx.principal.email,
        payload.badge_id,
        payload.target_email,
    )
    return {"badge": badge}


def create_backup(ctx: ActionContext) -> dict:
    """Snapshots the caller's own data and stores it as a UserBackup."""
    email = ctx.principal.email
    snapshot = backups.collect_user_data(
        ctx.baas.filter, email, backups.profile_of(asdict(ctx.principal))
    )
    now = datetime.now(timezone.utc)
    name = backups.backup_name(now)
    record = backups.backup_record(name, now, snapshot)
    ctx.baas.create(backups.USER_BACKUP_KIND, record)
    return {
        "backup_name": name,
        "total_items": record["total_items"],
        "data": snapshot,
    }


def _find_user(ctx: ActionContext, email: str) -> dict:
    matches = ctx.baas.filter_privileged(USER_KIND, {"email": email})
    if not matches:
        raise NotFound("User not found")
    return matches[0]


def create_backup_for_user(ctx: ActionContext) -> dict:
    payload: UserEmailRequest = ctx.payload
    email = payload.user_email
    target = _find_user(ctx, email)
    snapshot = backups.collect_user_data(
        ctx.baas.filter_privileged, email, backups.profile_of(target)
    )
    now = datetime.now(timezone.utc)
    name = backups.backup_name(now, label=f"[Admin] {email} -")
    record = backups.backup_record(name, now, snapshot)
    ctx.baas.create_privileged(
        backups.USER_BACKUP_KIND, {**record, "created_by": email}
    )
    logger.info("%s backed up data of %s", ctx.principal.email, email)
    return {"backup_name": name, "total_items": record["total_items"]}


def download_user_data(ctx: ActionContext) -> dict:
    payload: UserEmailRequest = ctx.payload
    email = payload.user_email
    target = _find_user(ctx, email)
    profile = backups.profile_of(
        target, backups.PROFILE_FIELDS + ("role", "created_date")
    )
    snapshot = backups.collect_user_data(ctx.baas.filter_privileged, email, profile)
    return {
        "user_email": email,
        "total_items": backups.count_items(snapshot),
        "data": snapshot,
    }


def on_new_comment(ctx: ActionContext) -> dict:
    """
    Tells the caller's accepted friends who shelved the same book about a new
    comment, by push and by in-app notification.

    A friend who cannot be notified is logged and skipped.
    """
    payload: CommentRequest = ctx.payload
    me = ctx.principal

    book = next(
        (b for b in ctx.baas.list("Book") if b.get("id") == payload.book_id), None
    )
    if book is None:
        raise NotFound("Book not found")

    friends = {
        friendship.get("friend_email")
        for friendship in ctx.baas.filter(
            "Friendship", {"created_by": me.email, "status": FRIENDSHIP_ACCEPTED}
        )
    }
    readers = [
        user_book["created_by"]
        for user_book in ctx.baas.list_privileged("UserBook")
        if user_book.get("book_id") == payload.book_id
        and user_book.get("created_by") != me.email
        and user_book.get("created_by") in friends
    ]

    excerpt = payload.comment[:100] + ("..." if len(payload.comment) > 100 else "")
    for reader in readers:
        try:
            ctx.baas.invoke(
                PUSH_FUNCTION_NAME,
                {
                    "recipient_email": reader,
                    "title": f"💬 Nouveau commentaire de {me.shown_name}",
                    "body": f'Sur "{book.get("title")}": {excerpt}',
                    "data": {
                        "type": "comment",
                        "book_id": payload.book_id,
                        "from_user": me.email,
                    },
                },
            )
            ctx.baas.create_privileged(
                NOTIFICATION_KIND,
                {
                    "created_by": reader,
                    "type": "friend_comment",
                    "title": f"{me.shown_name} a commenté",
                    "message": f'Sur "{book.get("title")}"',
                    "link_type": "book",
                    "link_id": payload.book_id,
                    "from_user": me.email,
                    "is_read": False,
                },
            )
        except Exception as e:
            logger.warning("Failed to notify %s: %s", reader, e)

    return {"notifications_sent": len(readers)}


def send_reading_reminders(ctx: ActionContext) -> dict:
    """Creates reminder notifications for every reader with an email."""
    baas = ctx.baas
    books = {book.get("id"): book for book in baas.list_privileged("Book")}
    now = datetime.now(timezone.utc)

    details = []
    for user in baas.list_privileged(USER_KIND):
        email = user.get("email")
        if not email:
            continue
        user_books = baas.filter_privileged("UserBook", {"created_by": email})
        reading_lists = baas.filter_privileged("ReadingList", {"created_by": email})
        for reminder in reminders.reminders_for(user_books, books, reading_lists, now):
            baas.create_privileged(NOTIFICATION_KIND, reminder.notification(email))
            details.append(reminder.summary(email))

    logger.info("Sent %d reading reminders", len(details))
    return {"notifications_sent": len(details), "details": details}


IMPORT_PINTEREST_PINS = Action(
    name="importPinterestPins",
    handler=import_pinterest_pins,
    methods=("GET", "POST"),
)
SHARE_FAN_ART_TO_PINTEREST = Action(
    name="shareFanArtToPinterest",
    handler=share_fan_art_to_pinterest,
    request_model=SharePinRequest,
    required_fields=("image_url",),
)
SEND_MANUAL_NOTIFICATION = Action(
    name="sendManualNotification",
    handler=send_manual_notification,
    request_model=ManualNotificationRequest,
    required_fields=("recipient_email", "title", "body"),
    admin_only=True,
)
SEND_FCM_NOTIFICATION = Action(
    name=PUSH_FUNCTION_NAME,
    handler=send_fcm_notification,
    request_model=PushNotificationRequest,
    required_fields=("recipient_email", "title", "body"),
)
UPDATE_FCM_TOKEN = Action(
    name="updateFCMToken",
    handler=update_fcm_token,
    request_model=UpdatePushTokenRequest,
    required_fields=("fcm_token",),
)
UNLOCK_BADGE_FOR_USER = Action(
    name="unlockBadgeForUser",
    handler=unlock_badge_for_user,
    request_model=UnlockBadgeRequest,
    required_fields=("target_email", "badge_id"),
    admin_only=True,
)

CREATE_BACKUP = Action(name="createBackup", handler=create_backup)
CREATE_BACKUP_FOR_USER = Action(
    name="createBackupForUser",
    handler=create_backup_for_user,
    request_model=UserEmailRequest,
    required_fields=("user_email",),
    admin_only=True,
)
DOWNLOAD_USER_DATA = Action(
    name="downloadUserData",
    handler=download_user_data,
    request_model=UserEmailRequest,
    required_fields=("user_email",),
    admin_only=True,
)
ON_NEW_COMMENT = Action(
    name="onNewComment",
    handler=on_new_comment,
    request_model=CommentRequest,
    required_fields=("book_id", "comment"),
)
SEND_READING_REMINDERS = Action(
    name="sendReadingReminders",
    handler=send_reading_reminders,
    admin_only=True,
)

ACTIONS = (
    IMPORT_PINTEREST_PINS,
    SHARE_FAN_ART_TO_PINTEREST,
    SEND_MANUAL_NOTIFICATION,
    SEND_FCM_NOTIFICATION,
    UPDATE_FCM_TOKEN,
    UNLOCK_BADGE_FOR_USER,
    CREATE_BACKUP,
    CREATE_BACKUP_FOR_USER,
    DOWNLOAD_USER_DATA,
    ON_NEW_COMMENT,
    SEND_READING_REMINDERS,
    *HOOKS,
)
